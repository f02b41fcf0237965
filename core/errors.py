"""Error taxonomy for a binding generation run.

Every error here is terminal for the run: it is raised where the problem is
detected and propagates to the run harness, which reports it and exits
non-zero.
"""


class BindgenError(RuntimeError):
    """Base class for all generation run failures."""


class DirectoryNotFoundError(BindgenError):
    """Raised when a required directory cannot be located.

    Covers both a failed upward named-directory walk and an SDK root that has
    no version sub-directories.
    """


class ConfigurationError(BindgenError):
    """Raised when the module configuration or config file is invalid."""


class GenerationError(BindgenError):
    """Raised when a pipeline stage hits a construct it cannot process."""
