"""Default outpatient departments and their token label prefixes."""

DEFAULT_DEPARTMENTS = [
    ("General Medicine", "GEN"),
    ("Cardiology", "CAR"),
    ("Pediatrics", "PED"),
    ("Orthopedics", "ORT"),
    ("Dermatology", "DER"),
    ("Gastroenterology", "GAS"),
    ("Neurology", "NEU"),
]

DEPARTMENT_CODES = dict(DEFAULT_DEPARTMENTS)

DEPARTMENTS_CACHE_KEY = 'departments:public'
