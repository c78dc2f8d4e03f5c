"""
Tool catalog: static metadata about the tools a language model may call.

The catalog maps a tool name to its declared output type, input types, a human
description and a keyword set. It is built once and never mutated; the
dependency analyzer reads it for the type-compatibility heuristic and the
keyword index backs :func:`match_tools_by_keywords`.

Example:
    >>> DEFAULT_CATALOG.satisfies("sf_get_record", "sf_search")
    True
    >>> match_tools_by_keywords("search the web for company news")
    ['web_search', 'research_company', 'sf_search', 'sf_create_account']
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple, Union

from omegaconf import DictConfig, OmegaConf

from toolplan.types import CatalogError, ToolName, TypeTag

logger = logging.getLogger(__name__)

# Type tags that get special treatment in the compatibility rule
RECORD_ID: TypeTag = "record_id"
RECORDS: TypeTag = "records"


@dataclass(frozen=True)
class ToolSpec:
    """
    Catalog entry for a single tool.

    Attributes:
        name: Tool identifier
        description: Human readable description
        output_type: Type tag of what the tool produces
        input_types: Type tags of what the tool consumes
        keywords: Words used for fast keyword matching
    """

    name: ToolName
    description: str
    output_type: TypeTag
    input_types: Tuple[TypeTag, ...] = ()
    keywords: FrozenSet[str] = field(default_factory=frozenset)

    def accepts(self, output_type: TypeTag) -> bool:
        """Check if any declared input is satisfied by ``output_type``."""
        return any(
            needed == output_type or (needed == RECORD_ID and output_type == RECORDS)
            for needed in self.input_types
        )


class ToolCatalog(Mapping):
    """Immutable mapping of tool name to :class:`ToolSpec`."""

    def __init__(self, specs: Iterable[ToolSpec] = ()):
        entries: Dict[ToolName, ToolSpec] = {}
        for spec in specs:
            if spec.name in entries:
                raise CatalogError(
                    f"Duplicate tool '{spec.name}' in catalog", context={"tool": spec.name}
                )
            entries[spec.name] = spec
        self._entries = MappingProxyType(entries)

    def __getitem__(self, name: ToolName) -> ToolSpec:
        return self._entries[name]

    def __iter__(self) -> Iterator[ToolName]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ToolCatalog(tools={list(self._entries)})"

    def satisfies(self, consumer: ToolName, producer: ToolName) -> bool:
        """
        Check whether ``producer``'s output can feed one of ``consumer``'s inputs.

        A tool requiring a ``record_id`` is considered satisfied by a tool that
        outputs ``records``. Tools missing from the catalog never match.
        """
        consumer_spec = self._entries.get(consumer)
        producer_spec = self._entries.get(producer)
        if consumer_spec is None or producer_spec is None:
            return False
        return consumer_spec.accepts(producer_spec.output_type)

    @classmethod
    def from_dict(cls, data: Mapping) -> "ToolCatalog":
        """
        Build a catalog from ``{name: {description, output_type, input_types, keywords}}``.

        Raises:
            CatalogError: If an entry is not a mapping or lacks an ``output_type``
        """
        if not isinstance(data, Mapping):
            raise CatalogError(f"Catalog must be a mapping of tools, got {type(data).__name__}")
        specs = []
        for name, entry in data.items():
            entry = entry or {}
            if not isinstance(entry, Mapping):
                raise CatalogError(
                    f"Tool '{name}' must be a mapping, got {type(entry).__name__}",
                    context={"tool": name},
                )
            if "output_type" not in entry:
                raise CatalogError(
                    f"Tool '{name}' is missing 'output_type'", context={"tool": name}
                )
            specs.append(
                ToolSpec(
                    name=str(name),
                    description=str(entry.get("description", "")),
                    output_type=str(entry["output_type"]),
                    input_types=tuple(str(t) for t in entry.get("input_types") or ()),
                    keywords=frozenset(str(k).lower() for k in entry.get("keywords") or ()),
                )
            )
        return cls(specs)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ToolCatalog":
        """
        Load a catalog from a YAML file with a top-level ``tools`` mapping.

        Raises:
            CatalogError: If the file is missing or malformed
        """
        path = Path(path)
        if not path.exists():
            raise CatalogError(f"Catalog file not found: {path}", context={"path": str(path)})
        try:
            loaded = OmegaConf.load(path)
        except Exception as e:
            raise CatalogError(f"Failed to parse catalog {path}: {e!s}", cause=e)

        if not isinstance(loaded, DictConfig) or "tools" not in loaded:
            raise CatalogError(f"Catalog {path} has no 'tools' section")

        tools: Any = OmegaConf.to_container(loaded.tools, resolve=True)
        catalog = cls.from_dict(tools)
        logger.info("Loaded %d tools from %s", len(catalog), path)
        return catalog

    def keyword_index(self) -> Mapping:
        """Return the read-only ``tool -> keywords`` index."""
        return MappingProxyType({name: spec.keywords for name, spec in self._entries.items()})


DEFAULT_CATALOG = ToolCatalog(
    [
        # Search tools - no dependencies, can run in parallel
        ToolSpec(
            name="sf_query",
            description="Execute SOQL query to search Salesforce records",
            output_type=RECORDS,
            input_types=("query_string",),
            keywords=frozenset(["query", "soql", "select", "where", "find", "records", "data"]),
        ),
        ToolSpec(
            name="sf_search",
            description="Search across multiple Salesforce objects using SOSL",
            output_type=RECORDS,
            input_types=("search_term",),
            keywords=frozenset(["search", "find", "lookup", "sosl", "across", "multiple"]),
        ),
        ToolSpec(
            name="web_search",
            description="Search the web for information",
            output_type="web_results",
            input_types=("query_string",),
            keywords=frozenset(["web", "search", "google", "internet", "online"]),
        ),
        ToolSpec(
            name="research_company",
            description="Research company information from web",
            output_type="company_info",
            input_types=("company_name",),
            keywords=frozenset(["research", "company", "about", "info", "background", "news"]),
        ),
        # Get tools - may depend on search results for ids
        ToolSpec(
            name="sf_get_record",
            description="Get a single Salesforce record by ID",
            output_type="record",
            input_types=(RECORD_ID,),
            keywords=frozenset(["get", "fetch", "retrieve", "record", "details", "id"]),
        ),
        # Create tools
        ToolSpec(
            name="sf_create_lead",
            description="Create a new Lead",
            output_type=RECORD_ID,
            input_types=("lead_data",),
            keywords=frozenset(["create", "new", "add", "lead", "prospect"]),
        ),
        ToolSpec(
            name="sf_create_contact",
            description="Create a new Contact",
            output_type=RECORD_ID,
            input_types=("contact_data",),
            keywords=frozenset(["create", "new", "add", "contact", "person"]),
        ),
        ToolSpec(
            name="sf_create_account",
            description="Create a new Account",
            output_type=RECORD_ID,
            input_types=("account_data",),
            keywords=frozenset(["create", "new", "add", "account", "company", "organization"]),
        ),
        ToolSpec(
            name="sf_create_opportunity",
            description="Create a new Opportunity",
            output_type=RECORD_ID,
            input_types=("opportunity_data",),
            keywords=frozenset(["create", "new", "add", "opportunity", "deal", "opp"]),
        ),
        ToolSpec(
            name="sf_create_task",
            description="Create a new Task",
            output_type=RECORD_ID,
            input_types=("task_data",),
            keywords=frozenset(["create", "new", "add", "task", "todo", "followup", "reminder"]),
        ),
        # Update tools - need a record id first
        ToolSpec(
            name="sf_update_record",
            description="Update a Salesforce record",
            output_type="success",
            input_types=(RECORD_ID, "update_data"),
            keywords=frozenset(["update", "edit", "modify", "change", "set"]),
        ),
        # Metadata tools
        ToolSpec(
            name="sf_describe_object",
            description="Get object metadata and fields",
            output_type="metadata",
            input_types=("object_name",),
            keywords=frozenset(["describe", "fields", "metadata", "schema", "structure"]),
        ),
        ToolSpec(
            name="sf_list_objects",
            description="List available Salesforce objects",
            output_type="object_list",
            input_types=(),
            keywords=frozenset(["list", "objects", "available", "all"]),
        ),
    ]
)


def match_tools_by_keywords(
    query: str,
    available_tools: Optional[Iterable[ToolName]] = None,
    catalog: ToolCatalog = DEFAULT_CATALOG,
    limit: int = 5,
) -> List[ToolName]:
    """
    Rank tools by keyword overlap with a natural-language query.

    Args:
        query: Free text, split on whitespace after lowercasing
        available_tools: Tools to consider (defaults to the whole catalog)
        catalog: Catalog providing the keyword index
        limit: Maximum number of tools to return

    Returns:
        Tool names with at least one matching keyword, best first
    """
    query_words = set(query.lower().split())
    candidates = list(available_tools) if available_tools is not None else list(catalog)

    scores: List[Tuple[ToolName, int]] = []
    for tool in candidates:
        spec = catalog.get(tool)
        if spec is None:
            continue
        score = len(query_words & spec.keywords)
        if score > 0:
            scores.append((tool, score))

    # sorted() is stable, so ties keep candidate order
    scores.sort(key=lambda item: item[1], reverse=True)
    return [tool for tool, _ in scores[:limit]]
