# listmerge/headers.py

"""
Header catalog: the ordered, immutable set of known header templates, and the
loader that builds it from bundled and external JSON documents.
"""
import json
import logging
import re
from importlib import resources
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from .errors import HeaderCatalogError
from .models import HeaderDefinition, HeaderPosition

logger = logging.getLogger(__name__)

BUNDLED_PACKAGE = "listmerge"
BUNDLED_FOLDER = "templates"
INDEX_FILE = "index.json"
DEFAULT_EXTERNAL_DIR = "headers"


class HeaderCatalog:
    """
    Ordered collection of HeaderDefinitions.

    Iteration order is load order, which decides ties during header
    resolution. The catalog is built once and handed to each job explicitly.
    """

    def __init__(self, definitions: Iterable[HeaderDefinition] = ()):
        self._definitions = tuple(definitions)
        seen = set()
        for definition in self._definitions:
            name = definition.name
            if name is None or not name.strip():
                logger.warning("Header catalog contains a template without a name: %r", definition)
                continue
            if name in seen:
                raise HeaderCatalogError(f"Duplicate header name '{name}' in catalog")
            seen.add(name)

    def __iter__(self) -> Iterator[HeaderDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __bool__(self) -> bool:
        return bool(self._definitions)

    def __repr__(self) -> str:
        return f"HeaderCatalog({[d.name for d in self._definitions]!r})"

    @property
    def definitions(self) -> tuple:
        return self._definitions

    @property
    def names(self) -> List[Optional[str]]:
        return [d.name for d in self._definitions]

    def get(self, name: str) -> Optional[HeaderDefinition]:
        for definition in self._definitions:
            if definition.name == name:
                return definition
        return None

    def with_overrides(self, overrides: Iterable[HeaderDefinition]) -> "HeaderCatalog":
        """
        New catalog where entries sharing a name with an override are dropped
        and the overrides are appended in the given order.
        """
        overrides = list(overrides)
        names = {o.name for o in overrides}
        kept = [d for d in self._definitions if d.name not in names]
        return HeaderCatalog(kept + overrides)


def parse_header_document(doc: Dict, source: str = "<memory>") -> HeaderDefinition:
    """
    Build a HeaderDefinition from one JSON document.

    Fields: name, headers, headerAliases, headerPosition, sumColumn, sumPattern.
    """
    if not isinstance(doc, dict):
        raise HeaderCatalogError(f"Header document in {source} must be an object")

    name = doc.get("name")
    if not isinstance(name, str) or not name.strip():
        raise HeaderCatalogError(f"Missing name in {source}")

    headers = doc.get("headers")
    if not isinstance(headers, list) or not headers:
        raise HeaderCatalogError(f"Missing headers in {source}")

    aliases = doc.get("headerAliases") or []
    if not isinstance(aliases, list) or not all(isinstance(a, list) for a in aliases):
        raise HeaderCatalogError(f"headerAliases in {source} must be a list of lists")

    try:
        position = HeaderPosition.parse(doc.get("headerPosition"))
    except ValueError as exc:
        raise HeaderCatalogError(f"{exc} in {source}") from exc

    sum_pattern = doc.get("sumPattern")
    if sum_pattern:
        try:
            re.compile(sum_pattern)
        except re.error as exc:
            raise HeaderCatalogError(f"Invalid sumPattern in {source}: {exc}") from exc

    return HeaderDefinition(
        name=name,
        headers=headers,
        header_aliases=aliases,
        header_position=position,
        sum_column=doc.get("sumColumn") or None,
        sum_pattern=sum_pattern or None,
    )


def _is_header_file(name: str) -> bool:
    return name.lower().endswith(".json") and name.lower() != INDEX_FILE


def load_bundled_headers() -> List[HeaderDefinition]:
    root = resources.files(BUNDLED_PACKAGE).joinpath(BUNDLED_FOLDER)
    if not root.is_dir():
        logger.warning("No bundled header folder found in package '%s'", BUNDLED_PACKAGE)
        return []

    definitions = []
    for entry in sorted(root.iterdir(), key=lambda e: e.name):
        if not entry.is_file() or not _is_header_file(entry.name):
            continue
        source = f"{BUNDLED_FOLDER}/{entry.name}"
        try:
            doc = json.loads(entry.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise HeaderCatalogError(f"Invalid JSON in {source}: {exc}") from exc
        definitions.append(parse_header_document(doc, source))
    return definitions


def load_external_headers(folder) -> List[HeaderDefinition]:
    if folder is None or not Path(folder).is_dir():
        logger.info("No external headers directory found at %s (optional)", folder)
        return []

    by_name: Dict[str, HeaderDefinition] = {}
    for path in sorted(Path(folder).iterdir()):
        if not path.is_file() or not _is_header_file(path.name):
            continue
        try:
            with path.open(encoding="utf-8") as fh:
                doc = json.load(fh)
        except json.JSONDecodeError as exc:
            raise HeaderCatalogError(f"Invalid JSON in {path}: {exc}") from exc
        definition = parse_header_document(doc, str(path))
        by_name[definition.name] = definition
    return list(by_name.values())


def load_header_catalog(external_dir=DEFAULT_EXTERNAL_DIR, include_bundled: bool = True) -> HeaderCatalog:
    """
    Load the bundled catalog, then let external definitions replace bundled
    ones with the same name. New external names are appended.
    """
    bundled = HeaderCatalog(load_bundled_headers() if include_bundled else [])
    external = load_external_headers(external_dir)
    catalog = bundled.with_overrides(external) if external else bundled
    logger.info("Loaded %d header definitions (%d external)", len(catalog), len(external))
    return catalog
