"""Recovery of tool calls and tool arguments from unreliable model output.

Arguments are tried as strict JSON first, then as JSON after a repair pass,
then through key/value regex extraction. Some models also ignore the
structured tool channel and write calls inline as XML, e.g.::

    <xai:function_call name="createTextWindow">
      <parameter name="label">Notes</parameter>
    </xai:function_call>
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from ..errors import ToolArgumentsError
from ..llm import ToolCall

logger = logging.getLogger(__name__)

METHOD_JSON = "json"
METHOD_EMPTY = "empty"
METHOD_REPAIR = "json_repair"
METHOD_ARTIFACT_REGEX = "artifact_regex_extraction"
METHOD_GENERAL_REGEX = "general_regex_extraction"

ARTIFACT_TOOLS = frozenset({"createArtifactWindow"})
ARTIFACT_FIELDS = ("title", "description", "html", "css", "javascript")

XML_CALL_RE = re.compile(
    r"<(?P<ns>\w+):function_call\s+name=\"(?P<name>[^\"]+)\"\s*>(?P<body>.*?)</(?P=ns):function_call>",
    re.DOTALL,
)
XML_PARAM_RE = re.compile(r"<parameter\s+name=\"([^\"]+)\"\s*>(.*?)</parameter>", re.DOTALL)
XML_CALL_START_RE = re.compile(r"<\w+:function_call\b")
PARTIAL_TAG_RE = re.compile(r"<\w*(?::\w*)?\Z")

_KEY = r"(?:^|[{,])\s*[\"']?(\w+)[\"']?\s*:\s*"
_END = r"\s*(?=,|\}|$)"
DOUBLE_QUOTED_RE = re.compile(_KEY + r"\"((?:[^\"\\]|\\.)*)\"" + _END, re.DOTALL)
SINGLE_QUOTED_RE = re.compile(_KEY + r"'((?:[^'\\]|\\.)*)'" + _END, re.DOTALL)
BARE_VALUE_RE = re.compile(_KEY + r"([^,}]*)")

INT_RE = re.compile(r"^-?\d+$")
FLOAT_RE = re.compile(r"^-?\d*\.\d+$")


@dataclass
class ParsedArguments:
    """Arguments recovered for one tool call and how they were obtained."""

    args: dict[str, Any]
    method: str = METHOD_JSON
    issues: list[str] = field(default_factory=list)

    @property
    def recovered(self) -> bool:
        """True when anything other than plain JSON was needed."""
        return self.method not in (METHOD_JSON, METHOD_EMPTY)


def _unescape(value: str) -> str:
    return value.replace('\\"', '"').replace("\\'", "'").replace("\\n", "\n").replace("\\\\", "\\")


def coerce_scalar(value: str) -> Any:
    """Turn an unquoted token into a bool, int, float or None when it looks like one."""
    if value == "true":
        return True
    if value == "false":
        return False
    if value == "null":
        return None
    if INT_RE.match(value):
        return int(value)
    if FLOAT_RE.match(value):
        return float(value)
    return value


def repair_json(raw: str) -> str:
    """Escape stray quotes and raw control characters inside JSON strings.

    A double quote inside a string only closes it when the next
    non-space character is a structural one (``, : } ]``) or the input ends.
    Trailing commas before ``}`` or ``]`` are removed.
    """
    out: list[str] = []
    in_string = False
    i = 0
    n = len(raw)
    while i < n:
        ch = raw[i]
        if not in_string:
            if ch == '"':
                in_string = True
            out.append(ch)
            i += 1
            continue

        if ch == "\\" and i + 1 < n:
            out.append(raw[i:i + 2])
            i += 2
            continue
        if ch == '"':
            j = i + 1
            while j < n and raw[j] in " \t\r\n":
                j += 1
            if j >= n or raw[j] in ",:}]":
                in_string = False
                out.append(ch)
            else:
                out.append('\\"')
            i += 1
            continue
        if ch == "\n":
            out.append("\\n")
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\r":
            out.append("\\r")
        else:
            out.append(ch)
        i += 1

    return re.sub(r",\s*([}\]])", r"\1", "".join(out))


def _extract_artifact_fields(raw: str) -> dict[str, Any]:
    extracted: dict[str, Any] = {}
    for name in ARTIFACT_FIELDS:
        pattern = re.compile(
            r"[\"']?" + name + r"[\"']?\s*:\s*[\"']([\s\S]*?)[\"'](?=\s*,\s*[\"']?\w+[\"']?\s*:|\s*})",
            re.IGNORECASE,
        )
        match = pattern.search(raw)
        if match:
            extracted[name] = _unescape(match.group(1))
    return extracted


def extract_args_with_regex(raw: str) -> dict[str, Any]:
    """Best-effort key/value extraction from text that is not valid JSON.

    Recognizes double-quoted, single-quoted and bare values with quoted or
    unquoted keys. The first pattern that yields a key wins; bare values are
    stripped of stray quotes and coerced to booleans and numbers.
    """
    extracted: dict[str, Any] = {}

    for pattern in (DOUBLE_QUOTED_RE, SINGLE_QUOTED_RE):
        for match in pattern.finditer(raw):
            key = match.group(1)
            if key not in extracted:
                extracted[key] = _unescape(match.group(2))

    for match in BARE_VALUE_RE.finditer(raw):
        key = match.group(1)
        if key in extracted:
            continue
        value = match.group(2).strip().strip("\"'").strip()
        if not value:
            continue
        extracted[key] = coerce_scalar(value)

    return extracted


def _loads_object(text: str) -> dict[str, Any]:
    value = json.loads(text)
    # some models double-encode the arguments
    if isinstance(value, str):
        value = json.loads(value)
    if not isinstance(value, dict):
        raise ToolArgumentsError(f"Tool arguments must be a JSON object, got {type(value).__name__}")
    return value


def parse_tool_arguments(raw: Any, tool_name: str = "") -> ParsedArguments:
    """Parse raw tool-call arguments into a mapping.

    Raises:
        ToolArgumentsError: When the input decodes to JSON that is not an
            object, or is of a type that cannot hold arguments at all.
    """
    if raw is None:
        return ParsedArguments({}, METHOD_EMPTY)
    if isinstance(raw, dict):
        return ParsedArguments(dict(raw), METHOD_JSON)
    if not isinstance(raw, str):
        raise ToolArgumentsError(f"Unsupported argument payload type: {type(raw).__name__}")

    text = raw.strip()
    if not text:
        return ParsedArguments({}, METHOD_EMPTY)

    try:
        return ParsedArguments(_loads_object(text), METHOD_JSON)
    except (ValueError, RecursionError) as e:
        first_error = str(e)
        logger.warning(
            f"JSON parse failed for {tool_name or 'tool'} ({len(text)} chars): {e}"
        )

    repaired = repair_json(text)
    try:
        args = _loads_object(repaired)
        logger.warning(f"Recovered arguments for {tool_name or 'tool'} with JSON repair")
        return ParsedArguments(args, METHOD_REPAIR, [first_error])
    except (ValueError, RecursionError) as e:
        logger.warning(f"JSON repair failed for {tool_name or 'tool'}, falling back to regex: {e}")
        issues = [first_error, str(e)]

    if tool_name in ARTIFACT_TOOLS:
        args = _extract_artifact_fields(text)
        if args:
            logger.warning(
                f"Artifact regex extraction for {tool_name} recovered: {', '.join(sorted(args))}"
            )
            return ParsedArguments(args, METHOD_ARTIFACT_REGEX, issues)

    args = extract_args_with_regex(text)
    if args:
        logger.warning(
            f"Regex extraction for {tool_name or 'tool'} recovered: {', '.join(sorted(args))}"
        )
    else:
        logger.warning(f"No regex patterns matched for {tool_name or 'tool'}: {text[:200]!r}")
    return ParsedArguments(args, METHOD_GENERAL_REGEX, issues)


def _xml_parameter_value(value: str) -> Any:
    value = value.strip()
    if (value.startswith("[") and value.endswith("]")) or (
        value.startswith("{") and value.endswith("}")
    ):
        try:
            return json.loads(value)
        except (ValueError, RecursionError):
            return value
    return value


def contains_xml_function_call(content: str | None) -> bool:
    return bool(content) and XML_CALL_RE.search(content) is not None


def parse_xml_function_calls(content: str, id_prefix: str = "xml_call") -> list[ToolCall]:
    """Extract inline XML function calls as synthetic tool calls.

    Call ids are ``<id_prefix>_<n>``; callers that convert several responses
    into one transcript pass a distinct prefix for each.

    Returns an empty list when the content holds no complete call block.
    """
    calls = []
    for index, match in enumerate(XML_CALL_RE.finditer(content), start=1):
        args = {
            name: _xml_parameter_value(value)
            for name, value in XML_PARAM_RE.findall(match.group("body"))
        }
        calls.append(ToolCall(
            id=f"{id_prefix}_{index}",
            name=match.group("name"),
            arguments=json.dumps(args),
        ))
    return calls


class XmlCallStreamFilter:
    """Keeps inline XML function calls out of streamed content.

    Text is passed through as it arrives, except for a trailing fragment that
    could still grow into ``<ns:function_call``. Once a call tag is seen,
    nothing more is emitted for the response.
    """

    def __init__(self) -> None:
        self._held = ""
        self.suppressed = False

    def feed(self, text: str) -> str:
        if self.suppressed:
            return ""
        held = self._held + text
        match = XML_CALL_START_RE.search(held)
        if match:
            self.suppressed = True
            self._held = ""
            return held[:match.start()]
        partial = PARTIAL_TAG_RE.search(held)
        if partial:
            self._held = held[partial.start():]
            return held[:partial.start()]
        self._held = ""
        return held

    def flush(self) -> str:
        held, self._held = self._held, ""
        return "" if self.suppressed else held
