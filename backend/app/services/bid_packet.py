"""
TenderDesk - Bid Packet
Consolidated document list for a submission: the tender's own documents
plus the linked product's, one entry per document name.
"""

from typing import Any, Dict, Iterable, List, Optional

TENDER_SOURCE = "Tender"
PRODUCT_SOURCE = "Product"


def consolidate_bid_packet(
    tender_documents: Optional[Iterable[Dict[str, Any]]],
    product_documents: Optional[Iterable[Dict[str, Any]]] = None,
) -> List[Dict[str, Any]]:
    """
    Merge tender and product documents, keyed by name.

    A tender document always wins over a product document of the same name;
    within one source the last document of a name wins. Tender documents
    come first, then product-only ones, in first-seen order. Every entry is
    a copy tagged with its `source`.
    """
    packet: Dict[str, Dict[str, Any]] = {}
    for doc in tender_documents or []:
        packet[doc.get("name")] = {**doc, "source": TENDER_SOURCE}

    for doc in product_documents or []:
        name = doc.get("name")
        if packet.get(name, {}).get("source") == TENDER_SOURCE:
            continue
        packet[name] = {**doc, "source": PRODUCT_SOURCE}

    return list(packet.values())
