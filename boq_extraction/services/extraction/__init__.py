"""Extraction components for bills of quantities.

Per-sheet tiers (tried in order): AIExtractor, ResponseRecovery,
HeuristicRowParser. Post-processing: NonMaterialFilter, UnitNormalizer,
ArithmeticValidator, CategoryClassifier, CatalogMatcher.
"""

from boq_extraction.services.extraction.ai_extractor import AIExtractor
from boq_extraction.services.extraction.arithmetic_validator import ArithmeticCheck, ArithmeticValidator
from boq_extraction.services.extraction.catalog_matcher import CatalogMatch, CatalogMatcher
from boq_extraction.services.extraction.category_classifier import CategoryClassifier
from boq_extraction.services.extraction.heuristic_row_parser import HeuristicRowParser
from boq_extraction.services.extraction.non_material_filter import NonMaterialFilter
from boq_extraction.services.extraction.response_recovery import ResponseRecovery
from boq_extraction.services.extraction.sheet_segmenter import SheetSegmenter
from boq_extraction.services.extraction.strategy import StrategyOutcome
from boq_extraction.services.extraction.unit_normalizer import UnitNormalizer

__all__ = [
    "AIExtractor",
    "ArithmeticCheck",
    "ArithmeticValidator",
    "CatalogMatch",
    "CatalogMatcher",
    "CategoryClassifier",
    "HeuristicRowParser",
    "NonMaterialFilter",
    "ResponseRecovery",
    "SheetSegmenter",
    "StrategyOutcome",
    "UnitNormalizer",
]
