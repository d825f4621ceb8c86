"""
Error taxonomy shared by the git collaborators and the workflow pipeline.
"""


class CodeBuddyError(Exception):
    """Base exception for code_buddy."""
    pass


class ExternalCommandFailure(CodeBuddyError):
    """A git, test or lint command exited with a non-zero status."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class ProviderFailure(CodeBuddyError):
    """A commit-message provider failed (network, parsing or empty response)."""
    pass


class RepositoryStateError(CodeBuddyError):
    """The working directory is not a repository or has nothing to commit."""
    pass


class UserDeclined(CodeBuddyError):
    """The user answered "no" at a confirmation prompt. Not a failure."""
    pass
