import enum


class QueryOutcome(str, enum.Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    TRANSIENT_FAILURE = "transient_failure"
