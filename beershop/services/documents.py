"""Parsing of uploaded XML beer documents with DTDs and entities forbidden."""

import logging

from defusedxml import DTDForbidden, EntitiesForbidden, ExternalReferenceForbidden
from defusedxml.ElementTree import ParseError, fromstring

from beershop.core.errors import MalformedDocument, UnsafeDocumentRejected

logger = logging.getLogger(__name__)


def parse_beer_document(data: bytes) -> dict[str, str]:
    """
    Extract name and price text from an XML document such as
    ``<beer><name>Lager</name><price>4.5</price></beer>``.

    Any DOCTYPE, entity declaration or external reference rejects the whole
    document; nothing is resolved and nothing is silently dropped.
    """
    try:
        root = fromstring(data, forbid_dtd=True, forbid_entities=True, forbid_external=True)
    except (DTDForbidden, EntitiesForbidden, ExternalReferenceForbidden) as e:
        logger.warning("Rejected XML document: %s", type(e).__name__)
        raise UnsafeDocumentRejected() from e
    except (ParseError, UnicodeDecodeError) as e:
        raise MalformedDocument() from e

    values: dict[str, str] = {}
    for tag in ("name", "price"):
        element = next(root.iter(tag), None)
        text = (element.text or "").strip() if element is not None else ""
        if not text:
            raise MalformedDocument("Invalid XML structure")
        values[tag] = text
    return values
