"""
Authority Information Access decoding

Walks the raw DER content of an AIA extension (RFC 5280 section 4.2.2.1):

    AuthorityInfoAccessSyntax ::= SEQUENCE SIZE (1..MAX) OF AccessDescription
    AccessDescription ::= SEQUENCE {
        accessMethod    OBJECT IDENTIFIER,
        accessLocation  GeneralName }

Only the tag/length/value layer of asn1crypto is used so that malformed or
unusual encodings are reported precisely instead of being normalised away.
"""

from dataclasses import dataclass
from typing import Iterator, List, Tuple

from asn1crypto import core as asn1_core, parser as asn1_parser

from .errors import AIAStructureError, AIAUnknownTypeError


AUTHORITY_INFO_ACCESS = "1.3.6.1.5.5.7.1.1"
AIA_OCSP = "1.3.6.1.5.5.7.48.1"
AIA_CA_ISSUERS = "1.3.6.1.5.5.7.48.2"

CLASS_UNIVERSAL = 0
CLASS_CONTEXT = 2
TAG_OBJECT_IDENTIFIER = 6
TAG_SEQUENCE = 16
TAG_URI = 6  # GeneralName uniformResourceIdentifier [6] IA5String

_METHOD_NAMES = {AIA_OCSP: "OCSP", AIA_CA_ISSUERS: "CA Issuers"}


@dataclass(frozen=True)
class TaggedValue:
    """One decoded tag/length/value triple"""
    class_: int
    constructed: bool
    tag: int
    contents: bytes
    encoded: bytes

    def is_sequence(self) -> bool:
        return self.class_ == CLASS_UNIVERSAL and self.constructed and self.tag == TAG_SEQUENCE

    def children(self) -> List["TaggedValue"]:
        return read_tagged_values(self.contents)


def read_tagged_value(data: bytes) -> Tuple[TaggedValue, bytes]:
    """Decode the first value in ``data`` and return it with the remaining bytes."""
    try:
        consumed = asn1_parser.peek(data)
        class_, method, tag, _header, contents, _trailer = asn1_parser.parse(data[:consumed], strict=True)
    except ValueError as e:
        raise AIAStructureError(f"error unmarshaling: {e}") from e
    value = TaggedValue(
        class_=class_,
        constructed=method == 1,
        tag=tag,
        contents=contents,
        encoded=data[:consumed],
    )
    return value, data[consumed:]


def read_tagged_values(data: bytes) -> List[TaggedValue]:
    values: List[TaggedValue] = []
    rest = data
    while rest:
        value, rest = read_tagged_value(rest)
        values.append(value)
    return values


def decode_object_identifier(value: TaggedValue) -> str:
    if value.class_ != CLASS_UNIVERSAL or value.constructed or value.tag != TAG_OBJECT_IDENTIFIER:
        raise AIAStructureError(
            f"expected OBJECT IDENTIFIER, got class {value.class_} tag {value.tag}"
        )
    try:
        return asn1_core.ObjectIdentifier.load(value.encoded, strict=True).dotted
    except ValueError as e:
        raise AIAStructureError(f"error unmarshaling OBJECT IDENTIFIER: {e}") from e


def _parse_access_description(value: TaggedValue) -> Tuple[str, TaggedValue]:
    if not value.is_sequence():
        raise AIAStructureError("bad AIA sequence")

    method, rest = read_tagged_value(value.contents)
    access_method = decode_object_identifier(method)

    location, rest = read_tagged_value(rest)
    if rest:
        raise AIAStructureError("x509: trailing data after AIA access description")
    return access_method, location


def iter_access_descriptions(extension_bytes: bytes) -> Iterator[Tuple[str, TaggedValue]]:
    """Yield ``(access_method, location)`` pairs in encoding order."""
    seq, rest = read_tagged_value(extension_bytes)
    if rest:
        raise AIAStructureError("x509: trailing data after X.509 extension")
    if not seq.is_sequence():
        raise AIAStructureError("bad AIA sequence")

    for child in seq.children():
        yield _parse_access_description(child)


def decode_aia(extension_bytes: bytes, access_method: str = AIA_CA_ISSUERS) -> str:
    """
    Return the URI of the first access description using ``access_method``.

    An empty string means the extension has no description for that method.
    A matching description whose location is not a URI is an error.
    """
    for method, location in iter_access_descriptions(extension_bytes):
        if method != access_method:
            continue

        if location.class_ == CLASS_CONTEXT and location.tag == TAG_URI:
            try:
                return location.contents.decode("ascii")
            except UnicodeDecodeError as e:
                raise AIAStructureError(f"AIA location is not an IA5String: {e}") from e

        name = _METHOD_NAMES.get(access_method, access_method)
        raise AIAUnknownTypeError(
            f"Unknown type for AIA {name} extension: class {location.class_} tag {location.tag}",
            tag=location.tag,
        )

    return ""
