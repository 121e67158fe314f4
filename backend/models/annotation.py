"""
Annotation wire models

The same classes decode the concept-suggestion feed payload, decode the
PUT body of the HTTP API and encode the GET response, so field names follow
the wire (camelCase aliases) while Python code uses snake_case.

Wire shape:
    {
      "uuid": "<content uuid>",
      "suggestions": [
        {
          "thing": {"id": uri, "prefLabel": str, "types": [uri], "predicate": str},
          "provenances": [
            {"scores": [{"scoringSystem": uri, "value": float}],
             "agentRole": uri, "atTime": RFC3339}
          ]
        }
      ]
    }
"""
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator

KEYPHRASE_ONTOLOGY = "http://www.ft.com/ontology/extraction/KeyPhrase"
MENTIONS_PREDICATE = "http://www.ft.com/ontology/annotation/mentions"
RELEVANCE_SCORING_SYSTEM = "http://api.ft.com/scoringsystem/FT-RELEVANCE-SYSTEM"
CONFIDENCE_SCORING_SYSTEM = "http://api.ft.com/scoringsystem/FT-CONFIDENCE-SYSTEM"

# Predicate URI -> Neo4j relationship type
RELATIONS = {
    MENTIONS_PREDICATE: "MENTIONS",
}


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def null_is_absent(cls, data):
        """The suggestion producer encodes empty lists and zero values as null"""
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    def to_wire(self) -> dict:
        """Serialize with wire aliases, keeping only fields that were supplied"""
        return self.model_dump(by_alias=True, exclude_unset=True)


class Score(WireModel):
    scoring_system: str = Field("", alias="scoringSystem")
    value: float = 0.0


class Provenance(WireModel):
    scores: List[Score] = Field(default_factory=list)
    agent_role: str = Field("", alias="agentRole")
    at_time: str = Field("", alias="atTime")


class Concept(WireModel):
    """A concept being linked to. Identity is the UUID suffix of `id`."""
    id: str = ""
    pref_label: str = Field("", alias="prefLabel")
    types: List[str] = Field(default_factory=list)
    predicate: str = ""

    @property
    def is_keyphrase(self) -> bool:
        return any(KEYPHRASE_ONTOLOGY in concept_type for concept_type in self.types)


class Annotation(WireModel):
    """One candidate link from a content item to a concept"""
    concept: Concept = Field(default_factory=Concept, alias="thing")
    provenances: List[Provenance] = Field(default_factory=list)


class Suggestion(WireModel):
    """One feed-delivered batch of candidate annotations for a content item"""
    content_uuid: str = Field("", alias="uuid")
    suggestions: List[Annotation] = Field(default_factory=list)

    def keyphrase_annotations(self) -> List[Annotation]:
        return [a for a in self.suggestions if a.concept.is_keyphrase]
