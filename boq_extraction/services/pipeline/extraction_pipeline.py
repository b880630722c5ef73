"""End-to-end BOQ extraction for one job.

Stages:
1. Resolve the document text (inline or fetched from Google Sheets)
2. Snapshot the category registry and material catalog
3. Segment into sheets and run the extraction cascade per sheet
   (model -> response recovery -> heuristic parser), sheets in parallel
4. Merge in sheet order and number rows globally
5. Drop non-material rows
6. Normalize units and check arithmetic
7. Suggest categories and match against the catalog
8. Persist in batches inside one transaction and finalize the job
"""

import asyncio
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Optional

from boq_extraction.core.config import ExtractionSettings, LLMSettings, settings
from boq_extraction.core.exceptions import ConfigurationError, PersistenceBatchError
from boq_extraction.repositories.extracted_item_repository import ExtractedItemRepository
from boq_extraction.repositories.extraction_job_repository import ExtractionJobRepository
from boq_extraction.repositories.reference_data_repository import ReferenceDataRepository
from boq_extraction.schemas.extraction import CategoryEntry, ColumnMapping, ExtractedItem, SheetSegment
from boq_extraction.services.extraction.ai_extractor import AIExtractor, TextGenerator
from boq_extraction.services.extraction.arithmetic_validator import ArithmeticValidator
from boq_extraction.services.extraction.catalog_matcher import CatalogMatcher
from boq_extraction.services.extraction.category_classifier import CategoryClassifier
from boq_extraction.services.extraction.constants import SHEET_MARKER
from boq_extraction.services.extraction.heuristic_row_parser import HeuristicRowParser
from boq_extraction.services.extraction.non_material_filter import NonMaterialFilter
from boq_extraction.services.extraction.response_recovery import ResponseRecovery
from boq_extraction.services.extraction.sheet_segmenter import SheetSegmenter
from boq_extraction.services.extraction.strategy import ExtractionStrategy
from boq_extraction.services.extraction.unit_normalizer import UnitNormalizer
from boq_extraction.services.sheet_source import GoogleSheetSource
from boq_extraction.utils.logging import get_logger

LOGGER = get_logger(__name__)

CANCELLED_MESSAGE = "Extraction cancelled during shutdown"


@dataclass(frozen=True)
class PipelineResult:
    job_id: uuid.UUID
    status: str
    total_items: int = 0
    matched_items: int = 0
    rate_only_items: int = 0
    bills_found: int = 0
    sections_found: int = 0
    error_message: Optional[str] = None


class ExtractionPipeline:
    """Drives one extraction job from document text to persisted items."""

    def __init__(
        self,
        job_repository: ExtractionJobRepository,
        item_repository: ExtractedItemRepository,
        reference_repository: ReferenceDataRepository,
        llm_client: Optional[TextGenerator] = None,
        extraction_settings: Optional[ExtractionSettings] = None,
        llm_settings: Optional[LLMSettings] = None,
        sheet_source: Optional[GoogleSheetSource] = None,
    ):
        self.job_repository = job_repository
        self.item_repository = item_repository
        self.reference_repository = reference_repository
        self.llm_client = llm_client
        self.config = extraction_settings or settings.extraction
        self.llm_config = llm_settings or settings.llm
        self.sheet_source = sheet_source

        self.segmenter = SheetSegmenter()
        self.unit_normalizer = UnitNormalizer()
        self.validator = ArithmeticValidator(tolerance=self.config.arithmetic_tolerance)
        self.recovery = ResponseRecovery()
        self.non_material_filter = NonMaterialFilter(
            min_description_length=self.config.min_description_length
        )

    async def run(
        self,
        job_id: uuid.UUID,
        document_text: Optional[str] = None,
        google_sheet_id: Optional[str] = None,
        column_mappings: Optional[Mapping[str, ColumnMapping]] = None,
    ) -> PipelineResult:
        """Execute the job; failures are recorded on the job, not raised."""
        LOGGER.info(f"Starting extraction pipeline for job {job_id}")

        try:
            text = await self._resolve_text(document_text, google_sheet_id)
            categories = await self.reference_repository.list_categories()
            catalog = await self.reference_repository.list_catalog()
            LOGGER.info(
                "Loaded reference data",
                extra={"job_id": str(job_id), "categories": len(categories), "catalog": len(catalog)},
            )

            items = await self.extract_items(text, categories, column_mappings)
            items = self.non_material_filter.filter(items)

            classifier = CategoryClassifier(categories)
            matcher = CatalogMatcher(catalog, rate_variance_threshold=self.config.rate_variance_threshold)
            matched = 0
            for item in items:
                self._normalize(item)
                classifier.apply(item)
                if matcher.apply(item):
                    matched += 1

            await self._persist(job_id, items)

            result = PipelineResult(
                job_id=job_id,
                status="completed",
                total_items=len(items),
                matched_items=matched,
                rate_only_items=sum(1 for item in items if item.is_rate_only),
                bills_found=len({item.bill_number for item in items if item.bill_number is not None}),
                sections_found=len({
                    (item.bill_number, item.section_code) for item in items if item.section_code
                }),
            )
            await self.job_repository.mark_completed(
                job_id,
                total_items_extracted=result.total_items,
                items_matched_to_catalog=result.matched_items,
                rate_only_items=result.rate_only_items,
                bills_found=result.bills_found,
                sections_found=result.sections_found,
                commit=False,
            )
            await self.item_repository.commit()
            LOGGER.info(
                f"Extraction job {job_id} completed",
                extra={"total_items": result.total_items, "matched_items": result.matched_items},
            )
            return result

        except asyncio.CancelledError:
            LOGGER.warning(f"Extraction job {job_id} cancelled")
            try:
                await self._fail(job_id, CANCELLED_MESSAGE)
            except Exception as e:
                LOGGER.error(f"Could not record cancellation of job {job_id}: {e}", exc_info=True)
            raise

        except Exception as e:
            LOGGER.error(f"Extraction job {job_id} failed: {e}", exc_info=True)
            await self._fail(job_id, str(e))
            return PipelineResult(job_id=job_id, status="failed", error_message=str(e))

    async def _fail(self, job_id: uuid.UUID, error_message: str) -> None:
        await self.item_repository.rollback()
        await self.job_repository.mark_failed(job_id, error_message)

    async def _resolve_text(self, document_text: Optional[str], google_sheet_id: Optional[str]) -> str:
        if google_sheet_id:
            if self.sheet_source is None:
                raise ConfigurationError("Google Sheets source is not configured")
            return await self.sheet_source.fetch_document(google_sheet_id)
        return document_text or ""

    async def extract_items(
        self,
        text: str,
        categories: Sequence[CategoryEntry] = (),
        column_mappings: Optional[Mapping[str, ColumnMapping]] = None,
    ) -> list[ExtractedItem]:
        """Run the per-sheet cascade and return the merged, globally numbered items."""
        segments = self.segmenter.segment(text)
        if not segments and text and text.strip():
            if SHEET_MARKER not in text:
                LOGGER.info("No sheet markers found, treating document as a single sheet")
                segments = [self.segmenter.fallback_segment(text)]

        ai_extractor = AIExtractor(
            client=self.llm_client,
            categories=categories,
            min_sheet_chars=self.config.min_sheet_chars,
            max_sheet_chars=self.config.max_sheet_chars,
            timeout_seconds=self.llm_config.timeout_seconds,
            temperature=self.llm_config.temperature,
            max_output_tokens=self.llm_config.max_output_tokens,
        )
        heuristic = HeuristicRowParser(
            unit_normalizer=self.unit_normalizer,
            validator=self.validator,
            column_mappings=column_mappings,
            header_scan_lines=self.config.header_scan_lines,
            min_description_length=self.config.min_description_length,
        )
        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrent_sheets))

        async def run_sheet(segment: SheetSegment) -> list[ExtractedItem]:
            async with semaphore:
                return await self._extract_sheet(segment, ai_extractor, heuristic)

        per_sheet = await asyncio.gather(*(run_sheet(segment) for segment in segments))

        merged: list[ExtractedItem] = []
        for sheet_items in per_sheet:
            merged.extend(sheet_items)
        for row_number, item in enumerate(merged, start=1):
            item.row_number = row_number

        LOGGER.info(f"Extracted {len(merged)} candidate items from {len(segments)} sheets")
        return merged

    async def _extract_sheet(
        self,
        segment: SheetSegment,
        ai_extractor: AIExtractor,
        heuristic: ExtractionStrategy,
    ) -> list[ExtractedItem]:
        outcome = await ai_extractor.extract(segment)
        if not outcome.deferred:
            outcome = self.recovery.recover(outcome.payload, segment)
        if outcome.deferred:
            LOGGER.info(
                f"Sheet {segment.name} falling back to heuristic parser",
                extra={"strategy": outcome.strategy, "reason": outcome.defer_reason},
            )
            outcome = await heuristic.extract(segment)
        return outcome.items

    def _normalize(self, item: ExtractedItem) -> None:
        item.unit = self.unit_normalizer.normalize(item.unit)
        if item.quantity is not None:
            if item.supply_cost is None and item.supply_rate is not None:
                item.supply_cost = item.quantity * item.supply_rate
            if item.install_cost is None and item.install_rate is not None:
                item.install_cost = item.quantity * item.install_rate
        self.validator.apply(item)

    async def _persist(self, job_id: uuid.UUID, items: list[ExtractedItem]) -> None:
        batch_size = max(1, self.config.persist_batch_size)
        for batch_index, start in enumerate(range(0, len(items), batch_size), start=1):
            batch = items[start:start + batch_size]
            try:
                await self.item_repository.add_batch(job_id, batch)
            except Exception as e:
                raise PersistenceBatchError(
                    f"Failed to persist item batch {batch_index} (rows {start + 1}-{start + len(batch)}): {e}",
                    batch_index=batch_index,
                    original_error=e,
                ) from e
            LOGGER.debug(f"Flushed item batch {batch_index} for job {job_id}", extra={"size": len(batch)})
