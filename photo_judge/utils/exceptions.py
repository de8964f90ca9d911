"""Custom exceptions for batch photo analysis

This module defines the exception hierarchy for the analysis pipeline:
- Base exception for all pipeline errors
- Specific exceptions for discovery, batch halts, set selection and config

All exceptions inherit from PipelineError to allow catching all pipeline-related
errors in a single except block when needed.
"""


class PipelineError(Exception):
    """Base exception for all pipeline errors

    Use this to catch any error in the analysis pipeline:
    ```python
    try:
        await driver.run(project_dir, competition)
    except PipelineError as e:
        logger.error("batch_failed", error=str(e))
    ```
    """

    pass


class NoPhotosFoundError(PipelineError):
    """No analyzable photos were found

    Raised when:
    - The photo directory does not exist
    - The directory holds no files with a supported extension

    No checkpoint is created when this is raised.
    """

    pass


class BatchAbortedError(PipelineError):
    """Batch halted before the work queue was exhausted

    Raised when:
    - The vision backend became unreachable mid-batch

    Progress up to the halt has been written to the checkpoint (see
    ``checkpoint_saved``), so the same command resumes the batch.
    """

    def __init__(
        self,
        message: str,
        resumable: bool = True,
        processed: int = 0,
        remaining: int = 0,
        checkpoint_saved: bool = False,
    ) -> None:
        super().__init__(message)
        self.resumable = resumable
        self.processed = processed
        self.remaining = remaining
        self.checkpoint_saved = checkpoint_saved


class CombinationLimitExceededError(PipelineError):
    """Candidate set search space is larger than allowed

    Raised when:
    - C(pre_filter_top_n, set_size) exceeds the configured maximum

    The message carries the exact count so the caller can lower
    ``pre_filter_top_n`` or ``set_size``.
    """

    def __init__(self, n: int, k: int, count: int, limit: int) -> None:
        self.n = n
        self.k = k
        self.count = count
        self.limit = limit
        super().__init__(
            f"Too many combinations: C({n},{k}) = {count} exceeds limit of "
            f"{limit}. Reduce preFilterTopN or setSize."
        )


class ConfigValidationError(PipelineError):
    """Competition configuration is missing or invalid

    Raised when:
    - No open-call.json / open-call.yaml exists in the project
    - The file cannot be parsed
    - Field validation fails
    """

    pass

