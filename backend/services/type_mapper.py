"""
Neo4j label <-> ontology type URI mapping.

Concept nodes carry one label per level of the type hierarchy
(e.g. Thing:Concept:Organisation:Company). The most specific type is the
deepest label, provided all labels sit on a single branch.
"""
import logging
from typing import Dict, Iterable, List, Optional

from models.annotation import KEYPHRASE_ONTOLOGY
from services.exceptions import TypeResolutionError

logger = logging.getLogger(__name__)

# label -> parent label
TYPE_HIERARCHY: Dict[str, Optional[str]] = {
    'Thing': None,
    'Concept': 'Thing',
    'Classification': 'Concept',
    'Person': 'Concept',
    'Organisation': 'Concept',
    'Company': 'Organisation',
    'PublicCompany': 'Company',
    'PrivateCompany': 'Company',
    'Brand': 'Classification',
    'Subject': 'Classification',
    'Section': 'Classification',
    'Genre': 'Classification',
    'Location': 'Classification',
    'Topic': 'Classification',
    'SpecialReport': 'Classification',
    'AlphavilleSeries': 'Classification',
    'Keyphrase': 'Concept',
}

TYPE_URIS: Dict[str, str] = {
    'Thing': 'http://www.ft.com/ontology/core/Thing',
    'Concept': 'http://www.ft.com/ontology/concept/Concept',
    'Classification': 'http://www.ft.com/ontology/classification/Classification',
    'Person': 'http://www.ft.com/ontology/person/Person',
    'Organisation': 'http://www.ft.com/ontology/organisation/Organisation',
    'Company': 'http://www.ft.com/ontology/company/Company',
    'PublicCompany': 'http://www.ft.com/ontology/company/PublicCompany',
    'PrivateCompany': 'http://www.ft.com/ontology/company/PrivateCompany',
    'Brand': 'http://www.ft.com/ontology/product/Brand',
    'Subject': 'http://www.ft.com/ontology/Subject',
    'Section': 'http://www.ft.com/ontology/Section',
    'Genre': 'http://www.ft.com/ontology/Genre',
    'Location': 'http://www.ft.com/ontology/Location',
    'Topic': 'http://www.ft.com/ontology/Topic',
    'SpecialReport': 'http://www.ft.com/ontology/SpecialReport',
    'AlphavilleSeries': 'http://www.ft.com/ontology/AlphavilleSeries',
    'Keyphrase': KEYPHRASE_ONTOLOGY,
}


class TypeMapper:
    """Resolves Neo4j labels against a parent-pointer type hierarchy"""

    def __init__(
        self,
        hierarchy: Dict[str, Optional[str]] = None,
        type_uris: Dict[str, str] = None
    ):
        self.hierarchy = hierarchy if hierarchy is not None else TYPE_HIERARCHY
        self.type_uris_by_label = type_uris if type_uris is not None else TYPE_URIS

    def ancestors(self, label: str) -> List[str]:
        """Label followed by its ancestors, most specific first"""
        chain = []
        current: Optional[str] = label
        while current is not None:
            chain.append(current)
            current = self.hierarchy.get(current)
        return chain

    def depth(self, label: str) -> int:
        return len(self.ancestors(label)) - 1

    def most_specific_type(self, labels: Iterable[str]) -> str:
        """
        URI of the deepest label.

        Raises:
            TypeResolutionError: no labels, an unknown label, or labels on
                more than one branch of the hierarchy
        """
        labels = list(dict.fromkeys(labels))
        if not labels:
            raise TypeResolutionError("No types supplied")

        unknown = [label for label in labels if label not in self.hierarchy]
        if unknown:
            raise TypeResolutionError(f"Unknown concept type(s): {unknown}")

        deepest = max(labels, key=self.depth)
        lineage = set(self.ancestors(deepest))
        conflicting = [label for label in labels if label not in lineage]
        if conflicting:
            raise TypeResolutionError(
                f"Conflicting concept types: {deepest} and {conflicting}"
            )

        return self.type_uris_by_label[deepest]

    def type_uris(self, labels: Iterable[str]) -> List[str]:
        """Known labels as ontology URIs, most general first; unknown labels are skipped"""
        known = [label for label in dict.fromkeys(labels) if label in self.type_uris_by_label]
        known.sort(key=self.depth)
        return [self.type_uris_by_label[label] for label in known]
