"""Base mapper for entity-model conversion."""

from abc import ABC, abstractmethod


class BaseMapper[E, M](ABC):
    """Convert between domain entities (E) and database models (M)."""

    @abstractmethod
    def to_domain(self, model: M) -> E:
        pass

    @abstractmethod
    def to_model(self, entity: E) -> M:
        pass

    def to_domain_list(self, models: list[M]) -> list[E]:
        return [self.to_domain(model) for model in models]
