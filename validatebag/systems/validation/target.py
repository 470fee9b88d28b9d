"""
validatebag -- Target Bag Document Model

Read-only view over one bag directory. Nothing is read at construction time;
every part is parsed on first access and memoised for the lifetime of the
instance. One instance is built per validation request and never shared.

Layout consulted:
  bag-info.txt                  bag-level key/value metadata (BagIt tag file)
  data/                         payload
  metadata/dataset.xml          descriptive metadata (DDM)
  metadata/files.xml            file manifest metadata
  metadata/pre-staged.csv       payload files already staged in the archive
  original-filepaths.txt        original path -> physical path mapping
"""

from __future__ import annotations

import csv
import io
import posixpath
from pathlib import Path, PurePosixPath

import structlog
from lxml import etree

from validatebag.systems.validation.errors import DocumentParseError

logger = structlog.get_logger()

BAG_INFO_FILE = "bag-info.txt"
PAYLOAD_DIR = "data"
DDM_FILE = "metadata/dataset.xml"
FILES_XML_FILE = "metadata/files.xml"
PRE_STAGED_FILE = "metadata/pre-staged.csv"
ORIGINAL_FILEPATHS_FILE = "original-filepaths.txt"

PROFILE_VERSION_LABEL = "BagIt-Profile-Version"


# ─── Tag file parsing ─────────────────────────────────────────────


def parse_tag_lines(text: str) -> list[tuple[str, str]]:
    """
    Parse BagIt tag-file text into ordered (label, value) pairs.

    Duplicate labels are kept in order. Lines starting with whitespace continue
    the previous value. Lines without a colon are ignored.
    """
    pairs: list[tuple[str, str]] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        if line[0] in " \t" and pairs:
            label, value = pairs[-1]
            pairs[-1] = (label, f"{value} {line.strip()}")
            continue
        label, sep, value = line.partition(":")
        if not sep:
            continue
        pairs.append((label.strip(), value.strip()))
    return pairs


def profile_version_from_bag_info(bag_dir: Path) -> int:
    """
    Read the profile version a bag declares in bag-info.txt.

    The major number of ``BagIt-Profile-Version`` (``"1.0.0"`` -> 1). A bag
    that declares nothing readable is a version 0 bag.
    """
    path = bag_dir / BAG_INFO_FILE
    if not path.is_file():
        return 0
    pairs = parse_tag_lines(path.read_text(encoding="utf-8-sig", errors="replace"))
    values = [value for label, value in pairs if label == PROFILE_VERSION_LABEL]
    if not values:
        return 0
    major = values[0].split(".", 1)[0]
    try:
        return int(major)
    except ValueError:
        logger.info("profile_version_unreadable", bag=str(bag_dir), value=values[0])
        return 0


def ensure_bag_relative(relative: str | PurePosixPath) -> str:
    """
    Normalised form of a bag-relative path.

    Raises ValueError for absolute paths and for paths that climb out of the
    bag. This is a precondition on rule arguments, never a rule outcome.
    """
    text = str(relative)
    if PurePosixPath(text).is_absolute() or Path(text).is_absolute():
        raise ValueError(f"Path must be relative to the bag: {text}")
    normalized = posixpath.normpath(text)
    if normalized == ".." or normalized.startswith("../"):
        raise ValueError(f"Path must not point outside the bag: {text}")
    return normalized


# ─── Target ───────────────────────────────────────────────────────


class TargetBag:
    """One bag under test."""

    def __init__(self, bag_dir: Path | str, profile_version: int = 0) -> None:
        self.bag_dir = Path(bag_dir).absolute()
        self.profile_version = profile_version

        # Cached parse results; None means "not yet computed".
        self._bag_info: list[tuple[str, str]] | None = None
        self._ddm: etree._ElementTree | DocumentParseError | None = None
        self._files_xml: etree._ElementTree | DocumentParseError | None = None
        self._payload_paths: frozenset[str] | None = None
        self._pre_staged_paths: frozenset[str] | None = None
        self._original_to_physical: dict[str, str] | None = None

    def __repr__(self) -> str:
        return f"TargetBag({str(self.bag_dir)!r}, profile_version={self.profile_version})"

    @property
    def name(self) -> str:
        return self.bag_dir.name

    # ─── Paths ────────────────────────────────────────────────────

    def resolve(self, relative: str | PurePosixPath) -> Path:
        """Absolute path of a bag-relative path (see ensure_bag_relative)."""
        return self.bag_dir / ensure_bag_relative(relative)

    def exists(self, relative: str | PurePosixPath) -> bool:
        return self.resolve(relative).exists()

    # ─── bag-info.txt ─────────────────────────────────────────────

    @property
    def bag_info(self) -> list[tuple[str, str]]:
        """Ordered (label, value) pairs of bag-info.txt; empty when absent."""
        if self._bag_info is None:
            path = self.resolve(BAG_INFO_FILE)
            if path.is_file():
                self._bag_info = parse_tag_lines(
                    path.read_text(encoding="utf-8-sig", errors="replace")
                )
            else:
                self._bag_info = []
        return self._bag_info

    def bag_info_values(self, label: str) -> list[str]:
        """All values recorded under ``label``, in file order."""
        return [value for key, value in self.bag_info if key == label]

    # ─── XML documents ────────────────────────────────────────────

    def _parse_xml(self, relative: str) -> etree._ElementTree | DocumentParseError:
        path = self.resolve(relative)
        if not path.is_file():
            return DocumentParseError(relative, "file not found")
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            return etree.parse(str(path), parser)
        except etree.XMLSyntaxError as e:
            logger.info("xml_parse_failed", file=relative, error=str(e))
            return DocumentParseError(relative, str(e))

    def ddm(self) -> etree._ElementTree:
        """Parsed metadata/dataset.xml. Raises DocumentParseError on every call if unreadable."""
        if self._ddm is None:
            self._ddm = self._parse_xml(DDM_FILE)
        if isinstance(self._ddm, DocumentParseError):
            raise self._ddm
        return self._ddm

    def files_xml(self) -> etree._ElementTree:
        """Parsed metadata/files.xml. Raises DocumentParseError on every call if unreadable."""
        if self._files_xml is None:
            self._files_xml = self._parse_xml(FILES_XML_FILE)
        if isinstance(self._files_xml, DocumentParseError):
            raise self._files_xml
        return self._files_xml

    # ─── Payload ──────────────────────────────────────────────────

    def payload_paths(self) -> frozenset[str]:
        """Bag-relative, '/'-separated paths of all regular files under data/."""
        if self._payload_paths is None:
            payload_dir = self.resolve(PAYLOAD_DIR)
            if payload_dir.is_dir():
                self._payload_paths = frozenset(
                    p.relative_to(self.bag_dir).as_posix()
                    for p in payload_dir.rglob("*")
                    if p.is_file()
                )
            else:
                self._payload_paths = frozenset()
        return self._payload_paths

    def pre_staged_paths(self) -> frozenset[str]:
        """The ``path`` column of metadata/pre-staged.csv; empty when absent."""
        if self._pre_staged_paths is None:
            path = self.resolve(PRE_STAGED_FILE)
            if path.is_file():
                text = path.read_text(encoding="utf-8-sig")
                reader = csv.DictReader(io.StringIO(text))
                self._pre_staged_paths = frozenset(
                    row["path"].strip() for row in reader if row.get("path")
                )
            else:
                self._pre_staged_paths = frozenset()
        return self._pre_staged_paths

    # ─── original-filepaths.txt ───────────────────────────────────

    @property
    def has_original_filepaths_file(self) -> bool:
        return self.resolve(ORIGINAL_FILEPATHS_FILE).is_file()

    def original_to_physical_paths(self) -> dict[str, str] | None:
        """
        Mapping from original (declared) path to physical (stored) path.

        Lines read ``<physical path>  <original path>``; the two-space separator
        allows single spaces inside either path. None when the file is absent.
        """
        if not self.has_original_filepaths_file:
            return None
        if self._original_to_physical is None:
            mapping: dict[str, str] = {}
            text = self.resolve(ORIGINAL_FILEPATHS_FILE).read_text(encoding="utf-8")
            for line in text.splitlines():
                if not line.strip():
                    continue
                physical, sep, original = line.partition("  ")
                if sep:
                    mapping[original.strip()] = physical.strip()
            self._original_to_physical = mapping
        return self._original_to_physical
