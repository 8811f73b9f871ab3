"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidScheduleError(DomainException):
    """Frequency or due-day cannot produce a due-date sequence"""

    pass


class InsufficientConfigurationError(DomainException):
    """Rent settings are missing a field needed for a deterministic balance"""

    def __init__(self, missing_fields: list[str]):
        self.missing_fields = missing_fields
        super().__init__(f"Missing rent settings: {', '.join(missing_fields)}")


class HolidayDataError(DomainException):
    """Holiday table is malformed"""

    pass
