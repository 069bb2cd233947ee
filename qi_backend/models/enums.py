from enum import Enum


class FormulaType(str, Enum):
    A_OVER_B = "A_OVER_B"
    B_OVER_A = "B_OVER_A"
    DIRECT = "DIRECT"
    CUSTOM = "CUSTOM"


class BenchmarkStatus(str, Enum):
    COMPLIANT = "COMPLIANT"
    NON_COMPLIANT = "NON_COMPLIANT"
    NO_BENCHMARK = "NO_BENCHMARK"
    UNDETERMINED = "UNDETERMINED"


class PatientType(str, Enum):
    IPD = "IPD"
    OPD = "OPD"
    BOTH = "BOTH"


class SubmissionStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"
