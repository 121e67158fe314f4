"""
Read-only aggregates over keyphrase annotations
"""
from typing import List

from pydantic import Field

from models.annotation import WireModel


class PopularKeyphrase(WireModel):
    name: str = Field(alias="keyphrase")
    count: int


class CoOccurrence(WireModel):
    """A concept co-mentioned with a keyphrase, with its shared-mention count"""
    cooccurrence: int
    concept_uuid: str = Field(alias="conceptId")
    concept_label: str = Field("", alias="conceptLabel")
    concept_types: List[str] = Field(default_factory=list, alias="conceptTypes")
    concept_type: str = Field("", alias="conceptType")


class CoOccurrences(WireModel):
    keyphrase_uuid: str = Field(alias="keyphraseUuid")
    keyphrase_label: str = Field("", alias="keyphraseLabel")
    co_occurrences: List[CoOccurrence] = Field(default_factory=list, alias="coOccurrences")
