"""
Session gate: the process-wide record of who is signed in and which section is reachable

State only changes through transition(state, action). Every auth event bumps the
generation; results of a resolution started under an older generation are dropped.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional
import logging

from medconnect.auth.identity_provider import AuthEvent, IdentityProvider, Subscription
from medconnect.auth.session import AuthSession, SessionUser
from medconnect.services.navigation import Section, screens_for, section_for_role
from medconnect.services.profile_resolver import ProfileResolver

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class ActionKind(str, Enum):
    BEGIN = "begin"
    RESOLVED = "resolved"
    FAILED = "failed"
    SIGNED_OUT = "signed_out"
    PROVISIONED = "provisioned"


@dataclass(frozen=True)
class SessionState:
    status: SessionStatus = SessionStatus.UNAUTHENTICATED
    user: Optional[SessionUser] = None
    generation: int = 0

    @property
    def active_section(self) -> Section:
        if self.status != SessionStatus.AUTHENTICATED or self.user is None:
            return Section.AUTH
        return section_for_role(self.user.role)


@dataclass(frozen=True)
class GateAction:
    kind: ActionKind
    generation: int
    user: Optional[SessionUser] = None
    auth_id: Optional[str] = None


def transition(state: SessionState, action: GateAction) -> SessionState:
    """Reducer for the session gate"""
    if action.kind == ActionKind.BEGIN:
        # Re-resolving the session already shown must not flicker the navigation tree
        if (
            state.status == SessionStatus.AUTHENTICATED
            and state.user is not None
            and state.user.auth_id == action.auth_id
        ):
            return replace(state, generation=action.generation)
        return SessionState(SessionStatus.AUTHENTICATING, None, action.generation)

    if action.kind == ActionKind.SIGNED_OUT:
        return SessionState(SessionStatus.UNAUTHENTICATED, None, action.generation)

    if action.kind == ActionKind.PROVISIONED:
        return SessionState(SessionStatus.AUTHENTICATED, action.user, action.generation)

    # RESOLVED / FAILED answer a BEGIN; anything from an older generation is stale
    if action.generation != state.generation:
        return state

    if action.kind == ActionKind.FAILED:
        return SessionState(SessionStatus.UNAUTHENTICATED, None, action.generation)

    if action.kind == ActionKind.RESOLVED:
        if action.user is None:
            return SessionState(SessionStatus.UNAUTHENTICATED, None, action.generation)
        if state.status == SessionStatus.AUTHENTICATED and state.user == action.user:
            return state
        return SessionState(SessionStatus.AUTHENTICATED, action.user, action.generation)

    raise ValueError(f"Unknown gate action: {action.kind}")


StateListener = Callable[[SessionState], None]


class SessionGate:
    """Holds the live SessionState and feeds auth events through the reducer"""

    def __init__(self, resolver: ProfileResolver, identity_provider: Optional[IdentityProvider] = None):
        self.resolver = resolver
        self.identity_provider = identity_provider
        self._state = SessionState()
        self._listeners: list[StateListener] = []
        self._subscription: Optional[Subscription] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_user(self) -> Optional[SessionUser]:
        if self._state.status != SessionStatus.AUTHENTICATED:
            return None
        return self._state.user

    @property
    def active_section(self) -> Section:
        return self._state.active_section

    @property
    def screens(self) -> tuple:
        return screens_for(self.active_section)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call listener on every visible state change; returns an unsubscribe callable"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: GateAction) -> SessionState:
        previous = self._state
        self._state = transition(previous, action)
        if (previous.status, previous.user) != (self._state.status, self._state.user):
            logger.info(
                f"Session gate {previous.status.value} -> {self._state.status.value} "
                f"(section={self._state.active_section.value})"
            )
            for listener in list(self._listeners):
                listener(self._state)
        return self._state

    def _next_generation(self) -> int:
        return self._state.generation + 1

    @property
    def attached(self) -> bool:
        return self._subscription is not None

    def attach(self) -> None:
        """Listen for provider events; safe to call more than once"""
        if self.identity_provider is not None and self._subscription is None:
            self._subscription = self.identity_provider.on_auth_state_change(self.handle_auth_event)

    async def start(self) -> SessionState:
        """Subscribe to the identity provider and adopt any session that is already live"""
        if self.identity_provider is None:
            return self._state

        self.attach()

        session = await self.identity_provider.get_session()
        if session is not None:
            await self.handle_auth_event(AuthEvent.SIGNED_IN, session)
        return self._state

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def handle_auth_event(self, event: AuthEvent, session: Optional[AuthSession]) -> SessionState:
        if event == AuthEvent.SIGNED_OUT:
            return self.dispatch(GateAction(ActionKind.SIGNED_OUT, self._next_generation()))

        if event != AuthEvent.SIGNED_IN:
            logger.debug(f"Ignoring auth event {event}")
            return self._state

        if session is None or session.user is None:
            return self.dispatch(GateAction(ActionKind.SIGNED_OUT, self._next_generation()))

        generation = self._next_generation()
        self.dispatch(GateAction(ActionKind.BEGIN, generation, auth_id=session.user.id))

        try:
            user = await self.resolver.resolve(session)
        except Exception as e:
            logger.warning(f"Profile resolution failed for {session.user.id}: {e}")
            return self.dispatch(GateAction(ActionKind.FAILED, generation))

        if generation != self._state.generation:
            logger.info(f"Discarding stale resolution for {session.user.id}")
        return self.dispatch(GateAction(ActionKind.RESOLVED, generation, user=user))

    def accept_provisioned(self, user: SessionUser) -> SessionState:
        """Enter the signed-in state straight from a just-created account"""
        return self.dispatch(GateAction(ActionKind.PROVISIONED, self._next_generation(), user=user))
