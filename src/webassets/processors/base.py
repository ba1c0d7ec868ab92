"""
=============================================================================
ASSET PROCESSOR PIPELINE
=============================================================================

Defines the processor protocol and the pipeline that folds an asset
through an ordered list of processors.

=============================================================================
A STRICT LEFT FOLD
=============================================================================

Where middleware WRAPS (each layer calls the next), processors CHAIN:
every stage receives the previous stage's output and returns a new
Asset.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     PROCESSOR PIPELINE FLOW                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   resolved                                                           │
    │    asset ──► ┌────────────┐ ──► ┌────────────┐ ──► ┌────────────┐   │
    │              │ BaseHref   │     │ Custom     │     │Compression │   │
    │              │ (replace   │     │ processor  │     │ (always    │   │
    │              │  tokens)   │     │            │     │  last)     │   │
    │              └────────────┘     └────────────┘     └─────┬──────┘   │
    │                                                          │          │
    │                                                          ▼          │
    │                                                    final asset      │
    │                                                                      │
    │   Stage N+1 only starts after stage N returned.                     │
    │   An exception in any stage stops the fold and propagates.          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Compression goes last so that every earlier stage sees identity bytes
(or decodes them itself).

=============================================================================
INTERVIEW INSIGHT
=============================================================================

Q: "Why return a new asset instead of mutating the one passed in?"
A: "Immutability makes each stage independently testable and means a
   stage can't surprise a later one by changing something behind its
   back. It's functools.reduce over a list of pure-ish functions."

=============================================================================
"""

from abc import ABC, abstractmethod
from functools import reduce
from typing import Callable, Iterable, Iterator, List, Optional
import logging

from ..assets.asset import Asset
from ..http.request import HTTPRequest


logger = logging.getLogger(__name__)


# A stage as a plain function: (asset, request) → asset
ProcessorFunc = Callable[[Asset, HTTPRequest], Asset]


class AssetProcessor(ABC):
    """
    Abstract base class for pipeline stages.

    =========================================================================
    THE PROCESSOR CONTRACT
    =========================================================================

        class MyProcessor(AssetProcessor):
            def process(self, asset: Asset, request: HTTPRequest) -> Asset:
                if not asset.path.endswith(".html"):
                    return asset                 # pass through unchanged

                content = asset.content.decode().replace([("x", "y")])
                return asset.with_new_content(content)

    Rules:
        - return an Asset (the same one to pass through)
        - never mutate the input; use the with_* helpers
        - raise to abort the request (the host answers 500)

    =========================================================================
    """

    @abstractmethod
    def process(self, asset: Asset, request: HTTPRequest) -> Asset:
        """
        Transform one asset for one request.

        Args:
            asset: Output of the previous stage.
            request: The request being served.

        Returns:
            The asset for the next stage.
        """
        pass

    @property
    def name(self) -> str:
        """Stage name for logging."""
        return self.__class__.__name__


class ProcessorPipeline(AssetProcessor):
    """
    An ordered list of processors, itself usable as a processor.

    Usage:
        pipeline = ProcessorPipeline()
        pipeline.add(BaseHrefProcessor())
        pipeline.add(CompressionProcessor())

        final_asset = pipeline.process(asset, request)

    An empty pipeline returns the asset unchanged.
    """

    def __init__(self, processors: Optional[Iterable[AssetProcessor]] = None):
        self._processors: List[AssetProcessor] = []
        if processors:
            self.use(*processors)

    def add(self, processor: AssetProcessor) -> "ProcessorPipeline":
        """
        Append a stage.

        Returns:
            Self for method chaining
        """
        self._processors.append(processor)
        logger.debug(f"Added processor: {processor.name}")
        return self

    def use(self, *processors: AssetProcessor) -> "ProcessorPipeline":
        """Append several stages in order."""
        for processor in processors:
            self.add(processor)
        return self

    def process(self, asset: Asset, request: HTTPRequest) -> Asset:
        return reduce(
            lambda current, processor: self._run_stage(processor, current, request),
            self._processors,
            asset,
        )

    def _run_stage(self, processor: AssetProcessor, asset: Asset, request: HTTPRequest) -> Asset:
        logger.debug(f"Processing {asset.path} with {processor.name}")
        try:
            return processor.process(asset, request)
        except Exception:
            logger.error(f"Processor {processor.name} failed for {asset.path}")
            # Releases any stream an earlier stage wrapped
            asset.content.close()
            raise

    def __len__(self) -> int:
        return len(self._processors)

    def __iter__(self) -> Iterator[AssetProcessor]:
        return iter(self._processors)


# =============================================================================
# FUNCTION PROCESSORS
# =============================================================================

class FunctionProcessor(AssetProcessor):
    """
    Wraps a plain function as a processor.

        def add_banner(asset, request):
            ...
            return asset

        pipeline.add(FunctionProcessor(add_banner))
    """

    def __init__(self, func: ProcessorFunc, name: Optional[str] = None):
        self._func = func
        self._name = name or func.__name__

    def process(self, asset: Asset, request: HTTPRequest) -> Asset:
        return self._func(asset, request)

    @property
    def name(self) -> str:
        return self._name


def processor(func: ProcessorFunc) -> FunctionProcessor:
    """
    Decorator turning a function into a processor.

        @processor
        def add_banner(asset, request):
            ...
            return asset

        pipeline.add(add_banner)
    """
    return FunctionProcessor(func)
