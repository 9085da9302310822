"""Exception types and process exit codes."""

EXIT_OK = 0
EXIT_FAILURE = 1
# Reserved for "visual check exceeded budget"
EXIT_VISUAL_FAILED = 2


class SlimmerError(Exception):
    """Base class for failures that abort a run."""


class ConfigError(SlimmerError):
    """Invalid or incomplete run configuration."""


class DocumentLoadError(SlimmerError):
    """The input document could not be read or fetched."""


class DocumentParseError(SlimmerError):
    """The input document could not be parsed or serialized."""


class MinifyError(SlimmerError):
    """The pruned stylesheet could not be minified."""


class LoadError(Exception):
    """A single stylesheet source could not be loaded.

    Never fatal: the aggregator turns it into a skipped source.
    """
