"""
Annotation validation - runs before any store mutation
"""
from models.annotation import Annotation
from services.exceptions import MissingConceptIDError


def validate_annotation(annotation: Annotation) -> None:
    """
    Reject annotations with no concept id.

    Provenance is optional, and partial provenance is accepted.
    """
    if not annotation.concept.id:
        raise MissingConceptIDError(
            f"Concept uuid missing for annotation {annotation.to_wire()}"
        )
