"""
Flow query parser: turns pasted text or JSON into FlowQuery objects.

Accepted line formats:
  dstIp | dstIp:dstPort | dstIp tcp/443
  srcIp dstIp tcp 443
  srcIp:srcPort -> dstIp:dstPort udp
  - dstIp udp 53            ("-", "*" or "any" leaves the source unset)
  srcIp,dstIp,tcp,443       (comma-only lines are CSV)
Blank lines and lines starting with "#" are skipped. Failures are returned
in FlowParseResult.error, never raised.
"""
import json
import logging
import re
from typing import Optional, Tuple

from pydantic import ValidationError

from netcap.schemas.flow import PROTOCOL_NUMBERS, FlowParseResult, FlowQuery

logger = logging.getLogger(__name__)

EMPTY_INPUT_ERROR = "Enter at least one flow or JSON payload."
JSON_SHAPE_ERROR = "JSON must be an array of queries or an object with { queries: [...] }."
NO_FLOWS_ERROR = "No valid flows parsed. Try JSON or lines like: 10.0.0.1 10.0.0.2 tcp 443"

ANY_SOURCE = {"-", "*", "any"}
MAX_PROTOCOL_NUMBER = 255

_HOST_PORT = re.compile(r"^([^:]+):([^:]+)$")
_BRACKETED_V6 = re.compile(r"^\[([^\]]+)\](?::(\S+))?$")
_PORT_OR_RANGE = re.compile(r"^\d+(-\d+)?$")


def split_host_port(token: str) -> Tuple[str, Optional[str]]:
    """Split "host:port" or "[v6]:port". Bare IPv6 addresses are left whole."""
    v = token.strip()
    m = _BRACKETED_V6.match(v)
    if m:
        return m.group(1), m.group(2)
    m = _HOST_PORT.match(v)
    if not m:
        return v, None
    return m.group(1), m.group(2)


def _apply_proto_token(token: str, proto: Optional[int], dst_port: Optional[str]):
    p = token.strip().lower()
    if not p:
        return proto, dst_port
    if "/" in p:
        name, _, port = p.partition("/")
        if name in PROTOCOL_NUMBERS:
            proto = PROTOCOL_NUMBERS[name]
        elif name.isdigit():
            proto = int(name)
        if port:
            dst_port = port
        return proto, dst_port
    if p in PROTOCOL_NUMBERS:
        return PROTOCOL_NUMBERS[p], dst_port
    if p.isdigit() and int(p) <= MAX_PROTOCOL_NUMBER:
        return int(p), dst_port
    if _PORT_OR_RANGE.match(p):
        return proto, p
    return proto, dst_port


def _tokenize(line: str) -> list[str]:
    cleaned = line.replace("\t", " ").replace("->", " ")
    if "," in cleaned and " " not in cleaned.strip():
        parts = cleaned.split(",")
    else:
        parts = cleaned.replace(",", " ").split()
    return [p.strip() for p in parts if p.strip()]


def _parse_line(line: str) -> Optional[FlowQuery]:
    parts = _tokenize(line)
    if not parts:
        return None

    fields: dict = {}
    if len(parts) == 1:
        host, port = split_host_port(parts[0])
        fields["dst_ip"] = host
        fields["dst_port"] = port
    else:
        src_tok, dst_tok = parts[0], parts[1]
        dst_host, dst_port = split_host_port(dst_tok)
        fields["dst_ip"] = dst_host
        if src_tok.lower() not in ANY_SOURCE:
            src_host, src_port = split_host_port(src_tok)
            fields["src_ip"] = src_host
            fields["src_port"] = src_port

        proto = None
        if len(parts) > 2:
            proto, dst_port = _apply_proto_token(parts[2], proto, dst_port)
        if len(parts) > 3 and parts[3].strip():
            dst_port = parts[3].strip()
        fields["ip_proto"] = proto
        fields["dst_port"] = dst_port

    try:
        return FlowQuery(**fields)
    except ValidationError as e:
        logger.debug("Skipping flow line %r: %s", line, e.errors()[0].get("msg"))
        return None


def _parse_json(raw: str) -> FlowParseResult:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        return FlowParseResult(queries=[], error=f"Invalid JSON: {e.msg}")

    if isinstance(parsed, list):
        entries = parsed
    elif isinstance(parsed, dict) and isinstance(parsed.get("queries"), list):
        entries = parsed["queries"]
    else:
        return FlowParseResult(queries=[], error=JSON_SHAPE_ERROR)

    queries = []
    for entry in entries:
        if not isinstance(entry, dict) or not str(entry.get("dstIp") or "").strip():
            continue
        try:
            queries.append(FlowQuery.model_validate(entry))
        except ValidationError as e:
            logger.debug("Skipping JSON flow entry: %s", e.errors()[0].get("msg"))
    if not queries:
        return FlowParseResult(queries=[], error=NO_FLOWS_ERROR)
    return FlowParseResult(queries=queries)


def parse_flow_queries(text: str) -> FlowParseResult:
    raw = str(text or "").strip()
    if not raw:
        return FlowParseResult(queries=[], error=EMPTY_INPUT_ERROR)

    if raw.startswith("{") or raw.startswith("["):
        return _parse_json(raw)

    queries = []
    skipped = 0
    for line in raw.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        q = _parse_line(line)
        if q is None:
            skipped += 1
            continue
        queries.append(q)

    if skipped:
        logger.debug("Flow parser skipped %d unparseable line(s)", skipped)
    if not queries:
        return FlowParseResult(queries=[], error=NO_FLOWS_ERROR)
    return FlowParseResult(queries=queries)
