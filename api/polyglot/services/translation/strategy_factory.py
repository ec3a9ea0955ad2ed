"""Maps each content type to its translation strategy."""

import logging
from typing import Dict, Iterable, List

from polyglot.core.exceptions import UnsupportedTranslationTypeError
from polyglot.models.translation import TranslationType
from polyglot.services.translation.strategies import TranslationStrategy

logger = logging.getLogger(__name__)


class TranslationStrategyFactory:
    """Strategy lookup built once at startup.

    Args:
        strategies: Every available strategy. Each registers under its
            declared translation_type.

    Raises:
        ValueError: If two strategies claim the same type
    """

    def __init__(self, strategies: Iterable[TranslationStrategy]):
        self._strategies: Dict[TranslationType, TranslationStrategy] = {}
        for strategy in strategies:
            translation_type = strategy.translation_type
            if translation_type in self._strategies:
                raise ValueError(
                    f"Duplicate strategy for {translation_type.value}: "
                    f"{type(self._strategies[translation_type]).__name__} and "
                    f"{type(strategy).__name__}"
                )
            self._strategies[translation_type] = strategy

        logger.info(
            f"Registered translation strategies: "
            f"{[t.value for t in self._strategies]}"
        )

    def get_strategy(self, translation_type: TranslationType) -> TranslationStrategy:
        try:
            return self._strategies[translation_type]
        except KeyError:
            raise UnsupportedTranslationTypeError(translation_type) from None

    def has_strategy(self, translation_type: TranslationType) -> bool:
        return translation_type in self._strategies

    def supported_types(self) -> List[TranslationType]:
        return list(self._strategies)
