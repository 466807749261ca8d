"""Enumerations shared by the normalizer, the view engine, and the dashboard state."""

from enum import StrEnum


class ResultStatus(StrEnum):
    OK = "ok"
    FAILED = "failed"


class SortKey(StrEnum):
    ORIGIN = "origin"
    METRIC = "metric"
    VALUE = "value"


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC
