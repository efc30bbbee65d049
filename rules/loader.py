"""
Rule Loader - Builds the intent rule set from intents.csv
=========================================================

The rule source is a CSV file with a header row. Supported layouts::

    intent,patterns,response
    intent,patterns,response_en,response_fr

Column aliases are listed in ``rules.engine.FIELD_ALIASES``. Patterns
are pipe-separated. Quoted fields may contain commas, and a doubled
quote ("") inside a quoted field stands for one literal quote.

Bad rows are skipped; only a missing file is fatal.
"""

import csv
from pathlib import Path
from typing import Optional, List, Dict, Iterable, Union

from core.config import Config
from core.exceptions import ConfigError
from core.logging import get_logger
from .engine import FIELD_ALIASES, RuleSet

logger = get_logger("rules.loader")

DEFAULT_FILE_NAME = "intents.csv"

PROJECT_ROOT = Path(__file__).resolve().parent.parent

PathLike = Union[str, Path]


def candidate_paths(
    config: Optional[Config] = None,
    cwd: Optional[PathLike] = None,
) -> List[Path]:
    """
    List the locations probed for the rule file, in order.

    An explicit ``rules.rules_file`` comes first, then ``rules.search_dirs``,
    then the working directory, its ``server/`` subdirectory, the project
    root and finally the config directory.
    """
    file_name = DEFAULT_FILE_NAME
    paths: List[Path] = []

    if config is not None:
        if config.rules.rules_file:
            paths.append(Path(config.rules.rules_file).expanduser())
        file_name = config.rules.file_name or DEFAULT_FILE_NAME
        paths.extend(Path(d).expanduser() / file_name for d in config.rules.search_dirs)

    base = Path(cwd) if cwd is not None else Path.cwd()
    paths.append(base / file_name)
    paths.append(base / "server" / file_name)
    paths.append(PROJECT_ROOT / file_name)

    if config is not None and config.config_dir:
        paths.append(Path(config.config_dir) / file_name)

    unique: List[Path] = []
    for path in paths:
        resolved = path.resolve()
        if resolved not in unique:
            unique.append(resolved)
    return unique


def find_rules_file(paths: Iterable[PathLike]) -> Path:
    """
    Return the first existing file among ``paths``.

    Raises:
        ConfigError: If none exists. Every tried path is listed.
    """
    tried = [Path(p) for p in paths]
    for path in tried:
        if path.is_file():
            return path

    listing = "\n".join(f"- {p}" for p in tried)
    raise ConfigError(
        f"{DEFAULT_FILE_NAME} not found. Tried:\n{listing}",
        {"tried": [str(p) for p in tried]},
    )


def _read_rows(text: str) -> List[List[str]]:
    """
    Split CSV text into rows of trimmed fields, skipping blank lines.

    Each line is parsed on its own, so an unbalanced quote only
    garbles its own row.
    """
    rows = []
    for line in text.splitlines():
        if not line.strip():
            continue
        cells = next(csv.reader([line], skipinitialspace=True, strict=False), [])
        rows.append([cell.strip() for cell in cells])
    return rows


def _check_header(header: List[str]) -> None:
    known = set()
    for aliases in FIELD_ALIASES.values():
        known.update(aliases)

    if not any(alias in header for alias in FIELD_ALIASES["intent"]):
        logger.warning(f"Intents header has no intent column: {header}")

    has_pair = "response_en" in header and "response_fr" in header
    has_single = "response" in header
    if not has_pair and not has_single:
        logger.warning(
            "Intents file expected headers: intent,patterns,response "
            "OR intent,patterns,response_en,response_fr"
        )

    unknown = [h for h in header if h and h not in known]
    if unknown:
        logger.debug(f"Ignoring unknown intents columns: {unknown}")


def parse_rules(text: str, source: Optional[str] = None) -> RuleSet:
    """
    Parse CSV text into a RuleSet.

    Header names are matched case-insensitively. Missing trailing
    cells read as empty. Rows without an intent name are dropped.

    Args:
        text: Raw CSV content
        source: Where the text came from, kept on the rule set

    Returns:
        RuleSet in file order (possibly empty)
    """
    rows = _read_rows(text or "")
    if len(rows) < 2:
        return RuleSet(rules=(), source=source)

    header = [h.lower() for h in rows[0]]
    _check_header(header)

    records: List[Dict[str, str]] = []
    for cells in rows[1:]:
        record = {name: (cells[i] if i < len(cells) else "") for i, name in enumerate(header) if name}
        if not any(record.values()):
            continue
        records.append(record)

    rule_set = RuleSet.from_dicts(records, source=source)

    skipped = len(records) - len(rule_set)
    if skipped:
        logger.debug(f"Skipped {skipped} intent row(s) without an intent name")

    return rule_set


def load_rules_file(path: PathLike) -> RuleSet:
    """
    Load rules from a specific CSV file.

    Raises:
        ConfigError: If the file cannot be read
    """
    path = Path(path)
    try:
        # utf-8-sig strips a leading BOM
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to read intents file: {e}", {"path": str(path)})

    rule_set = parse_rules(text, source=str(path))
    logger.info(f"Loaded {len(rule_set)} intent rules from {path}")
    return rule_set


def load_rules(
    config: Optional[Config] = None,
    paths: Optional[Iterable[PathLike]] = None,
) -> RuleSet:
    """
    Locate and load the intent rules. Call once at startup.

    Args:
        config: Application config, used for the search locations
        paths: Explicit candidate paths, overriding the defaults

    Returns:
        Immutable RuleSet

    Raises:
        ConfigError: If no rule file exists at any candidate path
    """
    if paths is None:
        paths = candidate_paths(config)
    return load_rules_file(find_rules_file(paths))
