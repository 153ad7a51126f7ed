"""
Pure functions for parsing RETS XML replies.

All functions in this module are pure - they take XML bytes (or text)
in and return structured data out, with no side effects or I/O.

RETS servers are not very consistent in how they shape their replies,
so the parsed XML is first normalized into plain python structures
(see :func:`simplify`), and the consumers use :func:`as_sequence` and
:func:`as_object` wherever the shape may vary.
"""

import logging
from typing import Any

from lxml import etree
from lxml.etree import _Element

from retsclient.lib import error
from retsclient.lib.python_utilities import to_wire

from .types import QueryResult, ReplyEnvelope

log = logging.getLogger(__name__)

## Keys used in simplified nodes for attributes and for text
## sitting next to attributes or child elements.
ATTRIBUTE_KEY = "$"
TEXT_KEY = "_"

DEFAULT_COMPACT_DELIMITER = "09"


def _parse_xml(body: bytes | str | None, huge_tree: bool = False) -> _Element | None:
    """
    Parse ``body`` into an lxml tree.

    Returns None for empty input.  Text is encoded as UTF-8 before
    parsing, so an encoding declared in the XML prolog only applies to
    bytes.

    Raises:
        ParseError: If body is not well-formed XML
    """
    if body is None:
        return None
    encoding = "utf-8" if isinstance(body, str) else None
    raw = to_wire(body).strip()
    if not raw:
        return None
    parser = etree.XMLParser(
        huge_tree=huge_tree, resolve_entities=False, no_network=True, encoding=encoding
    )
    try:
        return etree.fromstring(raw, parser)
    except etree.XMLSyntaxError as e:
        log.debug("Unable to parse XML: %s", e)
        raise error.ParseError("Unable to parse XML") from e


def _local_name(elem: _Element) -> str:
    return etree.QName(elem).localname


def _child_elements(elem: _Element) -> list[_Element]:
    ## comments and processing instructions have a non-string tag
    return [child for child in elem if isinstance(child.tag, str)]


def _text_content(elem: _Element) -> str:
    parts = [elem.text or ""]
    parts.extend(child.tail or "" for child in elem)
    return "".join(parts)


def simplify(node: Any) -> Any:
    """
    Convert an XML element into plain python data.

    * An element without attributes and without child elements becomes
      its text (an empty string for an empty element).
    * Any other element becomes a dict.  Attributes go into a dict under
      the ``"$"`` key, each distinct child tag becomes a key.  A tag
      occurring once maps to the simplified child, a repeated tag maps to
      a list of simplified children in document order.  Non-blank text
      next to attributes or children goes under the ``"_"`` key.

    Namespaces are dropped from tag names.  Values that are already
    simplified (dicts, lists, strings, None) are returned unchanged, so
    simplify can safely be applied more than once.

    Example:
        ``<Lot Id="1"><Acreage>1.36</Acreage></Lot>`` becomes
        ``{"$": {"Id": "1"}, "Acreage": "1.36"}``
    """
    if not isinstance(node, _Element):
        return node

    children = _child_elements(node)
    attributes = {etree.QName(k).localname: v for k, v in node.attrib.items()}
    text = _text_content(node)

    if not children and not attributes:
        return text if text.strip() else ""

    ret: dict[str, Any] = {}
    if attributes:
        ret[ATTRIBUTE_KEY] = attributes
    if text.strip():
        ret[TEXT_KEY] = text.strip()

    grouped: dict[str, list[Any]] = {}
    for child in children:
        grouped.setdefault(_local_name(child), []).append(simplify(child))
    for name, values in grouped.items():
        ret[name] = values[0] if len(values) == 1 else values
    return ret


def as_sequence(value: Any) -> list[Any]:
    """None becomes an empty list, a list stays a list, anything else is wrapped"""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def as_object(value: Any) -> dict[str, Any]:
    """
    A dict stays a dict.  None and empty strings (empty elements)
    become an empty dict, other text becomes ``{"_": text}``.
    """
    if isinstance(value, dict):
        return value
    if value is None or value == "":
        return {}
    if isinstance(value, str):
        return {TEXT_KEY: value}
    raise error.ParseError(f"Expected an XML element, got {type(value).__name__}")


def parse_reply(body: bytes | str | None, huge_tree: bool = False) -> ReplyEnvelope | None:
    """
    Parse the outer RETS element of a reply without judging the ReplyCode.

    Args:
        body: Raw XML reply
        huge_tree: Allow parsing very large XML documents

    Returns:
        ReplyEnvelope, or None if the body is empty.  If the root element
        isn't RETS, the envelope has code 0 and the body is the whole
        simplified document keyed by the root tag.

    Raises:
        ParseError: If body is not valid XML
    """
    tree = _parse_xml(body, huge_tree=huge_tree)
    if tree is None:
        return None
    return _reply_from_tree(tree)


def _reply_from_tree(tree: _Element) -> ReplyEnvelope:
    root_name = _local_name(tree)
    if root_name != "RETS":
        error.weirdness(f"Expected a RETS root element, got {root_name}")
        return ReplyEnvelope(code=0, text="", body={root_name: simplify(tree)})

    content = as_object(simplify(tree))
    attributes = content.get(ATTRIBUTE_KEY, {})
    reply_code = attributes.get("ReplyCode")
    if reply_code is None:
        error.weirdness("RETS element without ReplyCode")
        reply_code = "0"
    reply_text = attributes.get("ReplyText", "")
    try:
        code = int(reply_code.strip())
    except ValueError:
        error.weirdness(f"ReplyCode is not a number: {reply_code!r}")
        code = error.INVALID_REPLY_CODE
        reply_text = f"ReplyCode {reply_code!r}" + (f", {reply_text}" if reply_text else "")
    return ReplyEnvelope(code=code, text=reply_text, body=content)


def _checked_reply(
    body: bytes | str | None, huge_tree: bool = False
) -> tuple[_Element | None, dict[str, Any]]:
    """
    Parse a reply and check the ReplyCode, returning both the tree
    and the simplified RETS content.
    """
    tree = _parse_xml(body, huge_tree=huge_tree)
    if tree is None:
        return None, {}
    envelope = _reply_from_tree(tree)
    error.raise_for_reply(envelope.code, envelope.text)
    return tree, as_object(envelope.body)


def parse_envelope(body: bytes | str | None, huge_tree: bool = False) -> dict[str, Any] | None:
    """
    Parse a RETS reply and check the ReplyCode.

    Returns:
        The simplified RETS element (including the ``"$"`` attributes),
        the whole simplified document if the root isn't RETS, or None if
        the body is empty.

    Raises:
        ParseError: If body is not valid XML
        ProtocolError: If the ReplyCode is not 0
    """
    envelope = parse_reply(body, huge_tree=huge_tree)
    if envelope is None:
        return None
    error.raise_for_reply(envelope.code, envelope.text)
    return envelope.body


def extract_body_text(body: bytes | str | None, huge_tree: bool = False) -> str:
    """
    Return the text inside RETS > RETS-RESPONSE.

    The ReplyCode is not checked here.

    Raises:
        ParseError: If body is not valid XML, or has no RETS-RESPONSE
    """
    tree = _parse_xml(body, huge_tree=huge_tree)
    if tree is None:
        raise error.ParseError("Unable to parse XML")
    if _local_name(tree) == "RETS":
        for child in _child_elements(tree):
            if _local_name(child) == "RETS-RESPONSE":
                return "".join(child.itertext())
    raise error.ParseError("Unable to find RETS-RESPONSE")


def parse_metadata(
    body: bytes | str | None,
    metadata_type: str = "METADATA-CLASS",
    huge_tree: bool = False,
) -> list[Any]:
    """
    Parse a GetMetadata reply in STANDARD-XML format.

    Args:
        body: Raw XML reply
        metadata_type: The element to collect from METADATA
        huge_tree: Allow parsing very large XML documents

    Returns:
        List of the ``metadata_type`` elements, also when there is only one

    Raises:
        ParseError: If body is not valid XML or has no (or an empty) METADATA
        ProtocolError: If the ReplyCode is not 0
    """
    content = as_object(parse_envelope(body, huge_tree=huge_tree))
    metadata = content.get("METADATA")
    if not metadata:
        raise error.ParseError("Unable to find METADATA")
    if isinstance(metadata, list):
        error.weirdness("Multiple METADATA elements in reply, using the first one")
        metadata = metadata[0]
    return as_sequence(as_object(metadata).get(metadata_type))


def flatten_object(obj: Any, into: dict[str, Any] | None = None) -> Any:
    """
    Collapse a nested record into a single level dict.

    Grouping keys are dropped and the innermost fields are kept:
    ``{"Address": {"StreetNumber": "410"}}`` becomes
    ``{"StreetNumber": "410"}``.  Field names are expected to be unique
    across the record; when they are not, the last one wins.  Lists are
    kept as values.  Anything but a dict is returned unchanged.
    """
    if not isinstance(obj, dict):
        return obj
    ret: dict[str, Any] = {} if into is None else into
    for key, value in obj.items():
        if isinstance(value, dict):
            flatten_object(value, ret)
        else:
            ret[key] = value
    return ret


def _extract_count(content: dict[str, Any]) -> int | None:
    count = content.get("COUNT")
    if count is None:
        return None
    if isinstance(count, list):
        count = count[0]
    records = as_object(count).get(ATTRIBUTE_KEY, {}).get("Records")
    if records is None:
        return None
    try:
        return int(records)
    except ValueError:
        error.weirdness(f"COUNT Records is not a number: {records!r}")
        return None


def _find_resource(redata: Any, resource_type: str, max_depth: int = 4) -> list[Any] | None:
    """
    Breadth-first search for ``resource_type`` below REData, through
    container elements like Properties > AllProperty.  All matches on
    the shallowest level where it occurs are returned.
    """
    level = [redata]
    for _ in range(max_depth):
        found: list[Any] = []
        next_level: list[Any] = []
        for candidate in level:
            for item in as_sequence(candidate):
                if not isinstance(item, dict):
                    continue
                if resource_type in item:
                    found.extend(as_sequence(item[resource_type]))
                    continue
                next_level.extend(v for k, v in item.items() if k != ATTRIBUTE_KEY)
        if found:
            return found
        level = next_level
    return None


def _split_compact(line: str, delimiter: str) -> list[str]:
    ## COMPACT lines both start and end with the delimiter
    if line.startswith(delimiter):
        line = line[len(delimiter) :]
    if line.endswith(delimiter):
        line = line[: -len(delimiter)]
    return line.split(delimiter)


def _raw_texts(tree: _Element | None, tag: str) -> list[str]:
    ## whitespace is significant in COMPACT rows, tab is the default delimiter
    if tree is None:
        return []
    return [_text_content(child) for child in _child_elements(tree) if _local_name(child) == tag]


def _compact_objects(tree: _Element | None, content: dict[str, Any]) -> list[dict[str, str]]:
    delimiter_node = as_object(content.get("DELIMITER"))
    hex_value = delimiter_node.get(ATTRIBUTE_KEY, {}).get("value", DEFAULT_COMPACT_DELIMITER)
    try:
        delimiter = chr(int(hex_value, 16))
    except ValueError as e:
        raise error.ParseError(f"Invalid DELIMITER value {hex_value!r}") from e

    columns = _raw_texts(tree, "COLUMNS")
    if not columns:
        raise error.ParseError("Unable to find COLUMNS")
    names = _split_compact(columns[0], delimiter)
    return [dict(zip(names, _split_compact(row, delimiter))) for row in _raw_texts(tree, "DATA")]


def parse_compact(body: bytes | str | None, huge_tree: bool = False) -> QueryResult:
    """
    Parse a Search reply in COMPACT or COMPACT-DECODED format.

    Every DATA row becomes a dict keyed by the names in COLUMNS.

    Raises:
        ParseError: If body is not valid XML, or has no COLUMNS
        ProtocolError: If the ReplyCode is not 0
    """
    tree, content = _checked_reply(body, huge_tree=huge_tree)
    return QueryResult(objects=_compact_objects(tree, content), count=_extract_count(content))


def parse_query(
    body: bytes | str | None,
    resource_type: str,
    flatten: bool = False,
    strict: bool = False,
    huge_tree: bool = False,
) -> QueryResult:
    """
    Parse a Search reply.

    Args:
        body: Raw XML reply
        resource_type: Name of the record element, like ``Property``
        flatten: Collapse each record into a single level dict
        strict: Raise instead of falling back to the whole REData
            element when ``resource_type`` can't be found
        huge_tree: Allow parsing very large XML documents

    Returns:
        QueryResult.  ``objects`` is always a list.  ``count`` is taken
        from the COUNT element, and is None if the server didn't send one.
        A reply without REData, or with an empty one, gives an empty
        result with count 0.
        If ``resource_type`` isn't found, the whole REData content is
        returned as the only object.

    Raises:
        ParseError: If body is not valid XML, or in strict mode when
            ``resource_type`` can't be found
        ProtocolError: If the ReplyCode is not 0
    """
    tree, content = _checked_reply(body, huge_tree=huge_tree)
    count = _extract_count(content)

    if "REData" not in content:
        if "COLUMNS" in content:
            return QueryResult(objects=_compact_objects(tree, content), count=count)
        return QueryResult(objects=[], count=count if count is not None else 0)

    redata = content["REData"]
    if not redata:
        return QueryResult(objects=[], count=count if count is not None else 0)

    objects = _find_resource(redata, resource_type)
    if objects is None:
        if strict:
            raise error.ParseError(f"Unable to find {resource_type} in REData")
        error.weirdness(f"{resource_type} not found in REData, returning the REData content")
        objects = as_sequence(redata)

    if flatten:
        objects = [flatten_object(obj) for obj in objects]
    return QueryResult(objects=objects, count=count)
