"""
Stage 1: Record Parser
======================
Turns raw pasted text or CSV into a list of Candidates (name + snippet).

Text mode:
- "Name - context" lines (1-4 capitalized words before a dash)
- Name-only lines (2-4 capitalized words) with a window of surrounding lines
- Last-resort scan of the joined text for "Name - context" pairs

CSV mode:
- First non-empty line is the header
- "name" column matched by substring, context columns concatenated
- Quote-aware comma splitting
"""

import logging
import re
from typing import List, Optional, Tuple

from ..models.schemas import Candidate, InputFormat
from ..config.settings import PIPELINE_CONFIG
from ..exceptions import EmptyInputError

logger = logging.getLogger(__name__)

DASHES = "—–-"

NAME_WITH_DASH = re.compile(
    r"^([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+){0,3})\s*[" + DASHES + r"]\s*(.+)$"
)
NAME_ONLY = re.compile(r"^[A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+){1,3}$")
GLOBAL_NAME_WITH_DASH = re.compile(
    r"([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+){1,3})\s*[" + DASHES + r"]\s*([^" + DASHES + r"]{10,})"
)

CONTEXT_COLUMNS = ("snippet", "content", "comment", "text", "context")


class RecordParserStage:
    """
    Stage 1: Extract prospect candidates from raw input.
    """

    def __init__(self, snippet_max_chars: Optional[int] = None):
        self.snippet_max_chars = snippet_max_chars or PIPELINE_CONFIG["snippet_max_chars"]

    def process(self, raw: str, fmt: InputFormat = InputFormat.AUTO) -> List[Candidate]:
        """
        Parse raw input into candidates.

        Args:
            raw: Pasted text or CSV content
            fmt: text, csv or auto (sniffed from the first line)

        Returns:
            Non-empty list of candidates

        Raises:
            EmptyInputError: nothing usable in the input
        """
        lines = self._split_lines(raw)
        if not lines:
            raise EmptyInputError("No data found: input is empty")

        fmt = InputFormat(fmt)
        sniffed = fmt == InputFormat.AUTO
        if sniffed:
            fmt = self.detect_format(lines[0])
            logger.debug("Detected input format: %s", fmt.value)

        if fmt == InputFormat.CSV and sniffed and self._map_columns(self._headers(lines[0]))[0] is None:
            # Comma-heavy prose whose first line was never a header
            logger.debug("No name column in sniffed header; parsing as text")
            fmt = InputFormat.TEXT

        if fmt == InputFormat.CSV:
            if len(lines) < 2:
                raise EmptyInputError("No data found: CSV has a header but no rows")
            candidates = self.parse_csv(lines)
            if not candidates and sniffed:
                # Header matched but no row did
                candidates = self.parse_text(lines[1:])
        else:
            candidates = self.parse_text(lines)

        if not candidates:
            raise EmptyInputError("No data found: no prospects could be extracted")

        logger.info("Extracted %d candidates (%s)", len(candidates), fmt.value)
        return candidates

    # =========================================================================
    # TEXT MODE
    # =========================================================================

    def parse_text(self, lines: List[str]) -> List[Candidate]:
        candidates = []

        for i, line in enumerate(lines):
            match = NAME_WITH_DASH.match(line)
            if match:
                candidates.append(Candidate(
                    name=match.group(1).strip(),
                    snippet=match.group(2).strip(),
                    source_line=i,
                ))
                continue

            if NAME_ONLY.match(line):
                window = lines[max(0, i - 1):min(len(lines), i + 3)]
                candidates.append(Candidate(
                    name=line,
                    snippet=" ".join(window),
                    source_line=i,
                ))

        if not candidates:
            candidates = self._global_scan(" ".join(lines))

        return candidates

    def _global_scan(self, text: str) -> List[Candidate]:
        """Last resort: find Name - content pairs anywhere in the text"""
        return [
            Candidate(
                name=m.group(1).strip(),
                snippet=m.group(2).strip()[:self.snippet_max_chars],
                source_line=0,
            )
            for m in GLOBAL_NAME_WITH_DASH.finditer(text)
        ]

    # =========================================================================
    # CSV MODE
    # =========================================================================

    def parse_csv(self, lines: List[str]) -> List[Candidate]:
        headers = self._headers(lines[0])
        name_index, context_indexes = self._map_columns(headers)
        if name_index is None:
            logger.warning("CSV header has no name column: %s", headers)
            return []

        header_line = ",".join(headers)
        candidates = []

        for i, line in enumerate(lines[1:], start=1):
            if line.lower() == header_line or line.lower() == lines[0].lower():
                continue

            fields = split_csv_line(line)
            name = self._field(fields, name_index)
            if len(name) <= 2:
                continue

            parts = [self._field(fields, idx) for idx in context_indexes]
            snippet = " ".join(p for p in parts if p).strip()

            candidates.append(Candidate(
                name=name,
                snippet=snippet or f"Prospect from CSV: {name}",
                source_line=i,
            ))

        return candidates

    @staticmethod
    def _headers(line: str) -> List[str]:
        return [h.strip().replace('"', "") for h in line.lower().split(",")]

    def _map_columns(self, headers: List[str]) -> Tuple[Optional[int], List[int]]:
        name_index = next((i for i, h in enumerate(headers) if "name" in h), None)
        context_indexes = [
            i for i, h in enumerate(headers)
            if i != name_index and any(col in h for col in CONTEXT_COLUMNS)
        ]
        return name_index, context_indexes

    @staticmethod
    def _field(fields: List[str], index: int) -> str:
        if index >= len(fields):
            return ""
        return fields[index].replace('"', "").strip()

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def detect_format(first_line: str) -> InputFormat:
        """CSV when the first line has commas and a name header or 3+ columns"""
        if "," in first_line and ("name" in first_line.lower() or len(first_line.split(",")) > 2):
            return InputFormat.CSV
        return InputFormat.TEXT

    @staticmethod
    def _split_lines(raw: Optional[str]) -> List[str]:
        if not raw:
            return []
        return [line.strip() for line in raw.splitlines() if line.strip()]


def split_csv_line(line: str) -> List[str]:
    """Split one CSV row on commas outside double quotes"""
    fields = []
    current = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())

    return fields
