"""Pydantic schemas for the Curriculum Catalog (phase -> topic -> resource)."""

from pydantic import BaseModel, ConfigDict


class CatalogResource(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    type: str = "text"
    url: str | None = None


class CatalogTopic(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    resources: tuple[CatalogResource, ...] = ()


class CatalogPhase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    topics: tuple[CatalogTopic, ...] = ()

    @property
    def topic_ids(self) -> set[str]:
        return {topic.id for topic in self.topics}


class Catalog(BaseModel):
    """Immutable curriculum tree, loaded once per process."""
    model_config = ConfigDict(frozen=True)

    version: str = "1"
    phases: tuple[CatalogPhase, ...] = ()

    @property
    def phase_ids(self) -> list[str]:
        return [phase.id for phase in self.phases]

    def get_phase(self, phase_id: str) -> CatalogPhase | None:
        for phase in self.phases:
            if phase.id == phase_id:
                return phase
        return None

    def has_topic(self, phase_id: str, topic_id: str) -> bool:
        phase = self.get_phase(phase_id)
        return phase is not None and topic_id in phase.topic_ids
