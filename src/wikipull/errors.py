"""Exception hierarchy for wikipull.

Errors fall into four families:

- Run rejection (``BatchRejectedError``): a batch could not be started.
  Raised synchronously from ``start_batch``; no state is mutated.
- Per-page (``PageError``): a single page failed. Caught by the
  orchestrator, counted as a failure, and the run continues.
- Run-fatal (``BatchFatalError``, ``TargetClosedError``): the run ends in
  the errored state.
- Delivery (``DeliveryError``): a request to the in-page agent could not
  be delivered or answered.
"""


class WikipullError(Exception):
    """Base class for all wikipull errors."""


class BatchRejectedError(WikipullError):
    """A batch run could not be started."""


class BatchAlreadyRunningError(BatchRejectedError):
    """A batch run is already active."""


class UnsupportedLocationError(BatchRejectedError):
    """The target is not showing a supported documentation site."""


class DiscoveryError(BatchRejectedError):
    """Page discovery failed inside the target."""


class NoPagesError(BatchRejectedError):
    """Discovery produced no pages for the current project."""


class PageError(WikipullError):
    """A single page could not be converted."""


class NavigationError(PageError):
    """Navigation did not reach the destination in time, or failed."""


class ConversionError(PageError):
    """The agent reported a failed conversion."""


class EmptyOutputError(PageError):
    """Conversion stayed suspiciously empty after the retry."""


class TopicSelectionError(PageError):
    """An in-page topic control could not be selected."""


class BatchFatalError(WikipullError):
    """The run cannot continue."""


class NothingConvertedError(BatchFatalError):
    """Every page of the run failed."""


class TargetClosedError(WikipullError):
    """The driving target was closed."""


class DeliveryError(WikipullError):
    """A request to the in-page agent failed."""


class NoReceiverError(DeliveryError):
    """No agent is currently listening in the target (usually mid-reload)."""


class DeliveryTimeoutError(DeliveryError):
    """No response arrived before the request deadline."""
