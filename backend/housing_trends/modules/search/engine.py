"""
Filter engine: validation and execution of search filters.

validate() is the only way to obtain a ValidatedFilter, and execute() only
accepts one, so a malformed document never reaches the record store.
"""
from typing import Any, Dict, Optional, Union
from datetime import datetime
from pydantic import ValidationError
from housing_trends.core.exceptions import FilterIssue, InvalidFilterError
from housing_trends.models.search import (
    FilterDocument, ValidatedFilter, SearchResultSet, KindResult, Pagination
)
from housing_trends.modules.search.query_builder import RecordQueryBuilder, KIND_METRICS
from housing_trends.modules.search.repository import RecordRepository
import logging

logger = logging.getLogger(__name__)

# Hints returned alongside validation messages for the most common mistakes
SUGGESTED_FIXES = {
    "greater_than_equal": "Use a value at or above the minimum",
    "less_than_equal": "Use a value at or below the maximum",
    "enum": "Use one of the documented values",
    "literal_error": "Use one of the documented values",
    "int_parsing": "Use a whole number",
    "float_parsing": "Use a number",
    "finite_number": "Use a finite number",
}


def _issue_from_error(error: Dict[str, Any]) -> FilterIssue:
    field = ".".join(str(part) for part in error.get("loc", ())) or "filters"
    message = error.get("msg", "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]

    suggested_fix = SUGGESTED_FIXES.get(error.get("type"))
    if suggested_fix is None and "min must be less than or equal to max" in message:
        suggested_fix = "Swap the min and max values"

    return FilterIssue(field=field, message=message, suggested_fix=suggested_fix)


class FilterEngine:
    """Validates filter documents and runs them against a record repository"""

    def __init__(self, repository: RecordRepository, query_builder: Optional[RecordQueryBuilder] = None):
        self.repository = repository
        self.query_builder = query_builder or RecordQueryBuilder()

    def parse(self, document: Union[FilterDocument, Dict[str, Any], None]) -> FilterDocument:
        """Coerce a raw document into a FilterDocument, collecting every issue"""
        if isinstance(document, FilterDocument):
            return document
        if document is None:
            document = {}
        if not isinstance(document, dict):
            raise InvalidFilterError([FilterIssue(
                field="filters",
                message="Filters must be an object",
                suggested_fix="Send the filters as a JSON object",
            )])

        try:
            return FilterDocument.model_validate(document)
        except ValidationError as e:
            issues = [_issue_from_error(error) for error in e.errors()]
            logger.info(f"Rejected filter document with {len(issues)} issue(s)")
            raise InvalidFilterError(issues) from e

    def validate(self, document: Union[FilterDocument, Dict[str, Any], None]) -> ValidatedFilter:
        """Return an immutable ValidatedFilter or raise InvalidFilterError"""
        parsed = self.parse(document)
        # Re-run the checks for documents built with model_construct
        try:
            parsed = FilterDocument.model_validate(parsed.model_dump())
        except ValidationError as e:
            raise InvalidFilterError([_issue_from_error(error) for error in e.errors()]) from e
        return ValidatedFilter.from_document(parsed)

    def execute(self, validated: ValidatedFilter) -> SearchResultSet:
        """Run a validated filter, producing one labeled section per record kind"""
        if not isinstance(validated, ValidatedFilter):
            raise TypeError("execute() requires a ValidatedFilter; call validate() first")

        start_time = datetime.now()
        sections: Dict[str, KindResult] = {}

        for kind in validated.kinds:
            predicate = self.query_builder.build_predicate(kind, validated)
            order = self.query_builder.build_order(kind, validated)

            records = self.repository.find_by_predicate(
                predicate,
                order,
                offset=validated.page_offset,
                limit=validated.page_size
            )
            aggregates = self.repository.aggregate(predicate, KIND_METRICS[kind])

            sections[kind] = KindResult(
                records=records,
                total=aggregates.count,
                aggregates=aggregates
            )

        search_time_ms = int((datetime.now() - start_time).total_seconds() * 1000)
        logger.debug(f"Executed filter over {len(sections)} kind(s) in {search_time_ms}ms")

        return SearchResultSet(
            sections=sections,
            pagination=Pagination(page_size=validated.page_size, page_offset=validated.page_offset),
            filters_applied=validated,
            search_time_ms=search_time_ms
        )

    def search(self, document: Union[FilterDocument, Dict[str, Any], None]) -> SearchResultSet:
        return self.execute(self.validate(document))

    @staticmethod
    def total_results(result: SearchResultSet) -> int:
        return sum(section.total for section in result.sections.values())
