"""Exception hierarchy for the people counter core."""


class PeopleCounterError(Exception):
    """Base exception for all people counter errors."""


class StoreUnavailable(PeopleCounterError):
    """The store could not be reached, or a read or write failed to complete."""


class InvalidArgument(PeopleCounterError, ValueError):
    """A caller-supplied argument is malformed (bad date, naive bound, ...)."""
