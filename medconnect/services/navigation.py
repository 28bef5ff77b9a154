"""
Role-driven navigation mapping
Pure lookups: which screens each section exposes and which screen a role sees in a slot
"""

from enum import Enum
from typing import Optional

from medconnect.auth.session import Role


class Section(str, Enum):
    AUTH = "auth"
    PATIENT = "patient"
    DOCTOR = "doctor"
    LAB_OWNER = "labOwner"


AUTH_SCREENS = ("Login", "Signup", "ForgotPassword")

# Every role-conditional render goes through one of these slots
SLOT_SCREENS = {
    "home": {
        Role.PATIENT: "HomeScreenPatient",
        Role.DOCTOR: "HomeScreenDoctor",
        Role.LAB_OWNER: "HomeScreenLabOwner",
    },
    "history": {
        Role.PATIENT: "PatientMedicalHistory",
        Role.DOCTOR: "History",
        Role.LAB_OWNER: "PatientRecords",
    },
    "upload": {
        Role.PATIENT: "Uploads",
        Role.DOCTOR: "Uploads",
        Role.LAB_OWNER: "UploadTestResult",
    },
    "details": {
        Role.PATIENT: "DetailsScreenPatient",
        Role.DOCTOR: "DetailsScreenDoctor",
        Role.LAB_OWNER: "DetailsScreenLabOwner",
    },
    "profile": {
        Role.PATIENT: "Profile",
        Role.DOCTOR: "Profile",
        Role.LAB_OWNER: "Profile",
    },
    "records": {
        Role.PATIENT: "PatientRecords",
        Role.DOCTOR: "DoctorPatientRecords",
        Role.LAB_OWNER: "LabOwnerPatientTests",
    },
    "schedule": {
        Role.PATIENT: "ScheduleNewTest",
        Role.DOCTOR: "ScheduleNewTest",
        Role.LAB_OWNER: "ScheduleNewTest",
    },
    "appointments": {
        Role.PATIENT: "ViewAppointments",
        Role.DOCTOR: "ViewAppointments",
        Role.LAB_OWNER: "ViewAppointments",
    },
}

# Footer tab -> slot it opens
FOOTER_TABS = {
    "Home": "home",
    "History": "history",
    "Upload": "upload",
    "Details": "details",
    "Profile": "profile",
}


def section_for_role(role: Optional[Role]) -> Section:
    """Section for a signed-in role; no role means the auth section"""
    role = Role.parse(role)
    if role is None:
        return Section.AUTH
    return Section(role.value)


def screen_for(role: Role, slot: str) -> str:
    """The single role switch behind every role-conditional render"""
    try:
        screens = SLOT_SCREENS[slot]
    except KeyError:
        raise ValueError(f"Unknown navigation slot: {slot}")
    return screens.get(Role.parse(role), screens[Role.PATIENT])


def _section_screens(role: Role) -> tuple:
    screens = []
    for slot in SLOT_SCREENS:
        name = screen_for(role, slot)
        if name not in screens:
            screens.append(name)
    return tuple(screens)


SECTION_SCREENS = {
    Section.AUTH: AUTH_SCREENS,
    Section.PATIENT: _section_screens(Role.PATIENT),
    Section.DOCTOR: _section_screens(Role.DOCTOR),
    Section.LAB_OWNER: _section_screens(Role.LAB_OWNER),
}


def screens_for(section: Section) -> tuple:
    return SECTION_SCREENS[Section(section)]


def footer_target(role: Role, tab: str) -> str:
    """Screen the footer opens for a tab"""
    try:
        slot = FOOTER_TABS[tab]
    except KeyError:
        raise ValueError(f"Unknown footer tab: {tab}")
    return screen_for(role, slot)
