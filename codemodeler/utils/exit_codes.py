"""Centralized exit codes for the cmod CLI."""


class ExitCodes:
    """Standard exit codes for cmod commands."""

    SUCCESS = 0

    PARTIAL_FAILURE = 1

    TASK_INCOMPLETE = 3

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get human-readable description for an exit code."""
        descriptions = {
            cls.SUCCESS: "Success - every file analyzed",
            cls.PARTIAL_FAILURE: "Some analysis steps failed or files could not be parsed",
            cls.TASK_INCOMPLETE: "Task could not be completed (no input files or unreadable path)",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")
