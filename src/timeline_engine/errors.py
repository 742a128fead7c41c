from __future__ import annotations


class ScheduleError(Exception):
    """Base class for every error raised by the timeline engine."""


class CommandValidationError(ScheduleError):
    """Raised when a command is rejected (unknown ids, bad group candidates); the schedule is unchanged."""


class ScheduleConsistencyError(ScheduleError):
    """Raised when item/group cross-references disagree after normalisation."""


class ProjectFileError(ScheduleError):
    """Raised when a project or config file is malformed (bad types, unknown keys, bad dates)."""
