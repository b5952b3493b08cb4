"""
Strategy registry.

Maps a document type to the processing strategy that handles it. Strategies
are registered at startup; freeze() then builds a per-type lookup cache and
closes the registry, after which resolve() is a pure read.

Selection: among strategies whose can_handle() accepts the type, the highest
priority wins; ties go to the strategy registered first.
"""

import threading
from types import MappingProxyType
from typing import Optional
import structlog

from exceptions import RegistryFrozenError, StrategyNotFoundError
from services.processing_strategies import (
    AsnProcessingStrategy,
    DocumentProcessingStrategy,
    XmlProcessingStrategy,
)
from services.result_assembler import ResultAssembler

logger = structlog.get_logger(__name__)


class StrategyRegistry:
    """Registry of document processing strategies."""

    def __init__(self):
        self._strategies: list[DocumentProcessingStrategy] = []
        self._lock = threading.Lock()
        self._frozen = False
        self._cache: MappingProxyType = MappingProxyType({})

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, strategy: DocumentProcessingStrategy) -> None:
        """
        Register a strategy.

        Raises:
            RegistryFrozenError: If the registry was already frozen
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(strategy.name)
            self._strategies.append(strategy)

        logger.info(
            "strategy_registered",
            strategy=strategy.name,
            document_type=strategy.document_type,
            priority=strategy.priority
        )

    def strategies(self) -> list[DocumentProcessingStrategy]:
        """Registered strategies in registration order."""
        return list(self._strategies)

    def freeze(self) -> None:
        """Close registration and cache the winner for each declared type."""
        with self._lock:
            if self._frozen:
                return
            cache = {}
            for strategy in self._strategies:
                key = strategy.document_type.upper()
                if key not in cache:
                    winner = self._select(key)
                    if winner is not None:
                        cache[key] = winner
            self._cache = MappingProxyType(cache)
            self._frozen = True

        logger.info("strategy_registry_frozen", document_types=sorted(self._cache))

    def resolve(self, document_type: str) -> DocumentProcessingStrategy:
        """
        Strategy for a document type.

        Raises:
            StrategyNotFoundError: If no strategy can handle the type
        """
        key = (document_type or "").strip().upper()

        strategy = self._cache.get(key)
        if strategy is None:
            strategy = self._select(key)

        if strategy is None:
            logger.warning("strategy_not_found", document_type=document_type)
            raise StrategyNotFoundError(document_type)

        logger.debug("strategy_resolved", document_type=key, strategy=strategy.name)
        return strategy

    def _select(self, document_type: str) -> Optional[DocumentProcessingStrategy]:
        best: Optional[DocumentProcessingStrategy] = None
        for strategy in self._strategies:
            if not strategy.can_handle(document_type):
                continue
            # Strictly greater: earlier registration keeps a tie
            if best is None or strategy.priority > best.priority:
                best = strategy
        return best


def build_default_registry(assembler: ResultAssembler) -> StrategyRegistry:
    """Registry with the built-in ASN and generic XML strategies, frozen."""
    registry = StrategyRegistry()
    registry.register(AsnProcessingStrategy(assembler))
    registry.register(XmlProcessingStrategy(assembler))
    registry.freeze()
    return registry
