OPD = "OPD"
GCO = "GCO"
INF = "INF"
ADMINISTRATOR = "Administrator"

OFFICES = (OPD, GCO, INF)
ACCOUNT_OFFICES = OFFICES + (ADMINISTRATOR,)

OFFICE_CHOICES = [
    (OPD, "Office of the Prefect of Discipline"),
    (GCO, "Guidance Counseling Office"),
    (INF, "Infirmary"),
    (ADMINISTRATOR, "Administrator"),
]

# Record types
CASE = "Case"
COUNSELING = "Counseling"
MEDICAL = "Medical"
UNKNOWN = "Unknown"

RECORD_TYPES = (CASE, COUNSELING, MEDICAL)

OWNING_OFFICE = {
    CASE: OPD,
    COUNSELING: GCO,
    MEDICAL: INF,
}

REFERABLE_TYPES = (CASE, MEDICAL)

# URL slugs used by the REST surface: /{slug}-records, /student-{slug}-records
RECORD_SLUGS = {
    CASE: "case",
    COUNSELING: "counseling",
    MEDICAL: "medical",
}

# record_type values in the pending referral queue
REFERRAL_QUEUE_TYPES = {
    CASE: "case_record",
    MEDICAL: "medical_record",
}


def record_type_for_slug(slug):
    for record_type, candidate in RECORD_SLUGS.items():
        if candidate == slug:
            return record_type
    return None


def record_type_for_queue(queue_type):
    for record_type, candidate in REFERRAL_QUEUE_TYPES.items():
        if candidate == queue_type:
            return record_type
    return None


class ReferralState:
    NONE = "None"
    PENDING = "Pending"
    CONFIRMED = "Confirmed"

    CHOICES = [
        (NONE, "None"),
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
    ]


VIOLATION_LEVELS = ("Minor", "Major", "Serious")
CASE_STATUSES = ("Ongoing", "Resolved")

TO_SCHEDULE = "To Schedule"
COUNSELING_STATUSES = (TO_SCHEDULE, "Scheduled", "Done")

MEDICAL_STATUSES = ("Ongoing", "For Treatment", "Treated")

# Medical listing filter, cycled by the infirmary page
MEDICAL_FILTER_ALL = "ALL"
MEDICAL_FILTER_BOTH = "MEDICALPSYCHOLOGICAL"
MEDICAL_FILTER_MEDICAL = "MEDICAL"
MEDICAL_FILTER_PSYCHOLOGICAL = "PSYCHOLOGICAL"
MEDICAL_FILTERS = (
    MEDICAL_FILTER_ALL,
    MEDICAL_FILTER_BOTH,
    MEDICAL_FILTER_MEDICAL,
    MEDICAL_FILTER_PSYCHOLOGICAL,
)

# Attachments
ALLOWED_ATTACHMENT_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)
MAX_ATTACHMENTS = {
    CASE: 1,
    COUNSELING: 5,
    MEDICAL: 5,
}

# Navigation surface per effective office
NAVIGATION = {
    OPD: [
        ("Dashboard", "/dashboard"),
        ("OPD Records", "/opd-records"),
        ("GCO Records", "/gco-records"),
        ("INF Records", "/inf-records"),
        ("Medical Certificates", "/medical-certificates"),
        ("Student Data", "/student-data"),
    ],
    GCO: [
        ("Dashboard", "/dashboard"),
        ("GCO Records", "/gco-records"),
        ("OPD Records", "/opd-records"),
        ("INF Records", "/inf-records"),
        ("Medical Certificates", "/medical-certificates"),
        ("Student Data", "/student-data"),
    ],
    INF: [
        ("Dashboard", "/dashboard"),
        ("INF Records", "/inf-records"),
        ("GCO Records", "/gco-records"),
        ("Medical Certificates", "/medical-certificates"),
        ("Student Data", "/student-data"),
    ],
    ADMINISTRATOR: [
        ("Administrator Dashboard", "/administrator"),
    ],
}

THEMES = {
    OPD: "department-opd",
    GCO: "department-gco",
    INF: "department-inf",
    ADMINISTRATOR: "department-default",
}
