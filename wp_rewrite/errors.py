class WpRewriteError(Exception):
    pass


class PreconditionError(WpRewriteError):
    """Raised before any mutation when a run cannot start safely."""


class CommandError(WpRewriteError):
    def __init__(self, command, returncode=None, stderr=""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr or ""
        detail = f" (exit code {returncode})" if returncode is not None else ""
        message = f"Command '{' '.join(self.command)}' failed{detail}"
        if self.stderr.strip():
            message += f": {self.stderr.strip()}"
        super().__init__(message)


class OperationCancelled(WpRewriteError):
    """The operator declined a confirmation prompt."""
