# ABOUTME: In-memory model of an OPF package document (metadata, manifest, spine).
# ABOUTME: Builds the fixed-layout package for conversions and parses existing packages for introspection.

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from lxml import etree

from epuber.config import DEFAULT_LANGUAGE
from epuber.formats.markup import XHTML_MEDIA_TYPE, xml_escape

if TYPE_CHECKING:
    from epuber.core.renderer import PageImage
    from epuber.metadata.types import BookMetadata

OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"
XML_NS = "http://www.w3.org/XML/1998/namespace"

RENDITION_PREFIX = "rendition: http://www.idpf.org/vocab/rendition/#"
PACKAGE_ID = "bookid"

NAV_ID = "nav"
NAV_HREF = "nav.xhtml"
COVER_PAGE_ID = "cover"
COVER_PAGE_HREF = "xhtml/cover.xhtml"
SYNOPSIS_ID = "synopsis"
SYNOPSIS_HREF = "xhtml/sinopsis.xhtml"
COVER_IMAGE_ID = "cover-img"


class OpfParseError(Exception):
    """Raised when bytes cannot be parsed as a package document."""


@dataclass
class MetadataElement:
    """One child of <metadata>, named as written ("dc:title", "meta")."""

    name: str
    text: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass
class ManifestItem:
    """A file declared in the manifest. href is relative to the OPF's directory."""

    id: str
    href: str
    media_type: str
    properties: set[str] = field(default_factory=set)

    def has_property(self, name: str) -> bool:
        """Case-insensitive check for a properties token."""
        return name.lower() in {prop.lower() for prop in self.properties}


@dataclass
class SpineItem:
    """Reading-order reference to a manifest item."""

    idref: str
    linear: bool = True


@dataclass
class OpfDocument:
    """A package document: metadata block, manifest, and spine.

    Built documents enforce unique manifest ids and a duplicate-free spine
    that only references declared items. Parsed documents are taken as
    found, since real-world EPUBs break both rules.
    """

    unique_identifier: str = PACKAGE_ID
    version: str = "3.0"
    language: str | None = None
    prefix: str | None = None
    metadata: list[MetadataElement] = field(default_factory=list)
    manifest: list[ManifestItem] = field(default_factory=list)
    spine: list[SpineItem] = field(default_factory=list)
    page_progression_direction: str | None = None

    def add_metadata(
        self, name: str, /, text: str | None = None, **attributes: str
    ) -> MetadataElement:
        """Append a metadata element. Attribute names use '_' for '-'."""
        element = MetadataElement(
            name=name,
            text=text,
            attributes={key.replace("_", "-"): value for key, value in attributes.items()},
        )
        self.metadata.append(element)
        return element

    def add_item(self, item: ManifestItem) -> ManifestItem:
        """Declare a manifest item. Raises ValueError on a duplicate id."""
        if self.item_by_id(item.id) is not None:
            raise ValueError(f"Duplicate manifest id: {item.id}")
        self.manifest.append(item)
        return item

    def add_itemref(self, idref: str, linear: bool = True) -> SpineItem:
        """Append to the spine. The id must exist and may appear only once."""
        if self.item_by_id(idref) is None:
            raise ValueError(f"Spine references unknown manifest id: {idref}")
        if any(ref.idref == idref for ref in self.spine):
            raise ValueError(f"Manifest id already in spine: {idref}")
        spine_item = SpineItem(idref=idref, linear=linear)
        self.spine.append(spine_item)
        return spine_item

    def item_by_id(self, item_id: str) -> ManifestItem | None:
        for item in self.manifest:
            if item.id == item_id:
                return item
        return None

    def spine_documents(self) -> list[ManifestItem]:
        """Manifest items in spine order, skipping dangling itemrefs."""
        items = []
        for ref in self.spine:
            item = self.item_by_id(ref.idref)
            if item is not None:
                items.append(item)
        return items

    def texts(self, local_name: str) -> list[str]:
        """Stripped, non-blank texts of metadata elements with this local name.

        Dublin Core elements win; bare elements such as an unprefixed
        creator are read only when no dc: element yields a value.
        """
        for name in (f"dc:{local_name}", local_name):
            values = []
            for element in self.metadata:
                if element.name == name and element.text and element.text.strip():
                    values.append(element.text.strip())
            if values:
                return values
        return []

    @property
    def title(self) -> str | None:
        """First non-blank title, if any."""
        titles = self.texts("title")
        return titles[0] if titles else None

    @property
    def creators(self) -> list[str]:
        """All non-blank creator names in document order."""
        return self.texts("creator")

    def meta_content(self, name: str) -> str | None:
        """Content of the first <meta name=...> (case-insensitive name)."""
        for element in self.metadata:
            if element.name != "meta":
                continue
            if element.attributes.get("name", "").lower() == name.lower():
                content = element.attributes.get("content")
                if content is not None:
                    return content
        return None

    def meta_properties(self, prop: str, refines: str | None = None) -> list[MetadataElement]:
        """EPUB 3 <meta property=...> elements, optionally filtered by refines."""
        found = []
        for element in self.metadata:
            if element.name != "meta" or element.attributes.get("property") != prop:
                continue
            if refines is not None and element.attributes.get("refines") != refines:
                continue
            found.append(element)
        return found

    @property
    def cover_id(self) -> str | None:
        """Manifest id named by the legacy <meta name="cover" content=...>."""
        return self.meta_content("cover")

    def resolve_cover_item(self) -> ManifestItem | None:
        """Find the cover image declaration.

        Priority: the item named by <meta name="cover">, then an item whose
        properties include cover-image, then any image whose href mentions
        "cover". Within the last two rules the final matching item wins.
        """
        cover_id = self.cover_id
        by_id = by_property = by_guess = None
        for item in self.manifest:
            if cover_id is not None and item.id == cover_id and item.href:
                by_id = item
            if item.has_property("cover-image") and item.href:
                by_property = item
            if item.media_type.startswith("image/") and "cover" in item.href.lower():
                by_guess = item
        return by_id or by_property or by_guess

    def to_xml(self) -> str:
        """Serialize to a UTF-8 package document string."""
        package_attrs = {
            "xmlns": OPF_NS,
            "unique-identifier": self.unique_identifier,
            "version": self.version,
        }
        if self.language:
            package_attrs["xml:lang"] = self.language
        if self.prefix:
            package_attrs["prefix"] = self.prefix

        lines = ['<?xml version="1.0" encoding="utf-8"?>']
        lines.append(f"<package{_render_attributes(package_attrs)}>")
        lines.append(f'  <metadata xmlns:dc="{DC_NS}" xmlns:opf="{OPF_NS}">')
        for element in self.metadata:
            lines.append(f"    {_render_element(element.name, element.text, element.attributes)}")
        lines.append("  </metadata>")

        lines.append("  <manifest>")
        for item in self.manifest:
            attrs = {"id": item.id, "href": item.href, "media-type": item.media_type}
            if item.properties:
                attrs["properties"] = " ".join(sorted(item.properties))
            lines.append(f"    {_render_element('item', None, attrs)}")
        lines.append("  </manifest>")

        spine_attrs = {}
        if self.page_progression_direction:
            spine_attrs["page-progression-direction"] = self.page_progression_direction
        lines.append(f"  <spine{_render_attributes(spine_attrs)}>")
        for ref in self.spine:
            attrs = {"idref": ref.idref}
            if not ref.linear:
                attrs["linear"] = "no"
            lines.append(f"    {_render_element('itemref', None, attrs)}")
        lines.append("  </spine>")
        lines.append("</package>")
        return "\n".join(lines) + "\n"

    @classmethod
    def parse(cls, data: bytes) -> OpfDocument:
        """Parse package document bytes.

        Raises:
            OpfParseError: If the bytes are not well-formed XML.
        """
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            root = etree.fromstring(data, parser)
        except etree.XMLSyntaxError as exc:
            raise OpfParseError(f"Malformed package document: {exc}") from exc

        doc = cls(
            unique_identifier=root.get("unique-identifier", ""),
            version=root.get("version", ""),
            language=root.get(f"{{{XML_NS}}}lang"),
            prefix=root.get("prefix"),
        )

        metadata_root = _first_descendant(root, "metadata")
        if metadata_root is None:
            metadata_root = root
        for element in metadata_root.iter():
            if element is metadata_root or not isinstance(element.tag, str):
                continue
            doc.metadata.append(
                MetadataElement(
                    name=_element_name(element),
                    text=element.text,
                    attributes=_element_attributes(element),
                )
            )

        manifest_root = _first_descendant(root, "manifest")
        for element in (manifest_root if manifest_root is not None else root).iter():
            if not isinstance(element.tag, str) or etree.QName(element).localname != "item":
                continue
            doc.manifest.append(
                ManifestItem(
                    id=element.get("id", ""),
                    href=element.get("href", ""),
                    media_type=element.get("media-type", ""),
                    properties=set(element.get("properties", "").split()),
                )
            )

        spine_root = _first_descendant(root, "spine")
        if spine_root is not None:
            doc.page_progression_direction = spine_root.get("page-progression-direction")
            for element in spine_root.iter():
                if not isinstance(element.tag, str) or etree.QName(element).localname != "itemref":
                    continue
                idref = element.get("idref")
                if idref:
                    doc.spine.append(
                        SpineItem(idref=idref, linear=element.get("linear", "yes") != "no")
                    )
        return doc


def _render_attributes(attributes: dict[str, str]) -> str:
    return "".join(f' {key}="{xml_escape(value)}"' for key, value in attributes.items())


def _render_element(name: str, text: str | None, attributes: dict[str, str]) -> str:
    attrs = _render_attributes(attributes)
    if text is None:
        return f"<{name}{attrs}/>"
    return f"<{name}{attrs}>{xml_escape(text)}</{name}>"


def _first_descendant(root: etree._Element, local_name: str) -> etree._Element | None:
    for element in root.iter():
        if isinstance(element.tag, str) and etree.QName(element).localname == local_name:
            return element
    return None


def _element_name(element: etree._Element) -> str:
    qname = etree.QName(element)
    if qname.namespace == DC_NS:
        return f"dc:{qname.localname}"
    return qname.localname


def _element_attributes(element: etree._Element) -> dict[str, str]:
    attributes = {}
    for key, value in element.attrib.items():
        qname = etree.QName(key)
        if qname.namespace == OPF_NS:
            attributes[f"opf:{qname.localname}"] = value
        elif qname.namespace == XML_NS:
            attributes[f"xml:{qname.localname}"] = value
        else:
            attributes[qname.localname] = value
    return attributes


def _format_number(value: float) -> str:
    return f"{value:g}"


def new_package_identifier() -> str:
    """A fresh urn:uuid identifier for one conversion."""
    return f"urn:uuid:{uuid.uuid4()}"


def build_fixed_layout_package(
    metadata: BookMetadata,
    pages: list[PageImage],
    page_documents: list[str],
    cover_href: str,
    *,
    cover_media_type: str = "image/jpeg",
    has_synopsis: bool = False,
    identifier: str | None = None,
    modified: datetime | None = None,
    default_language: str = DEFAULT_LANGUAGE,
) -> OpfDocument:
    """Build the package document for a pre-paginated, image-per-page EPUB.

    Args:
        metadata: Descriptive record; every string is escaped on output.
        pages: Rendered page images in reading order.
        page_documents: Hrefs (relative to the OPF) of one markup document per
            page, parallel to pages.
        cover_href: Href of the cover image. When it equals one of the page
            image hrefs that item is flagged as the cover instead of being
            declared twice.
        cover_media_type: Media type of a standalone cover image.
        has_synopsis: Whether xhtml/sinopsis.xhtml is part of the book.
        identifier: Package identifier; a new urn:uuid when omitted.
        modified: dcterms:modified timestamp; now (UTC) when omitted.
        default_language: Used when metadata.languages is empty.

    Returns:
        A populated OpfDocument ready for to_xml().
    """
    if len(pages) != len(page_documents):
        raise ValueError("pages and page_documents must have the same length")

    identifier = identifier or new_package_identifier()
    modified = modified or datetime.now(timezone.utc)
    languages = metadata.languages_or_default(default_language)

    doc = OpfDocument(
        unique_identifier=PACKAGE_ID,
        version="3.0",
        language=languages[0],
        prefix=RENDITION_PREFIX,
        page_progression_direction="ltr",
    )

    doc.add_metadata("dc:identifier", identifier, id=PACKAGE_ID)
    doc.add_metadata("dc:title", metadata.title)
    for author in metadata.authors:
        if author.strip():
            doc.add_metadata("dc:creator", author.strip())
    for language in languages:
        doc.add_metadata("dc:language", language)
    if metadata.publisher and metadata.publisher.strip():
        doc.add_metadata("dc:publisher", metadata.publisher.strip())
    if metadata.date is not None:
        doc.add_metadata("dc:date", metadata.date.isoformat())
    if metadata.issued is not None:
        doc.add_metadata("meta", metadata.issued.isoformat(), property="dcterms:issued")
    if metadata.has_synopsis:
        doc.add_metadata("dc:description", metadata.synopsis.strip())
    for tag in sorted(metadata.tags):
        if tag.strip():
            doc.add_metadata("dc:subject", tag.strip())
    for scheme, value in metadata.ids.items():
        if value and value.strip():
            doc.add_metadata("dc:identifier", f"{scheme}:{value.strip()}")
    if metadata.rating is not None:
        doc.add_metadata("meta", name="calibre:rating", content=_format_number(metadata.rating))
    if metadata.series and metadata.series.strip():
        series = metadata.series.strip()
        doc.add_metadata("meta", name="calibre:series", content=series)
        if metadata.series_index is not None:
            doc.add_metadata(
                "meta",
                name="calibre:series_index",
                content=_format_number(metadata.series_index),
            )
        collection_id = f"c{uuid.uuid4().hex}"
        doc.add_metadata("meta", series, property="belongs-to-collection", id=collection_id)
        doc.add_metadata(
            "meta", "series", refines=f"#{collection_id}", property="collection-type"
        )
        if metadata.series_index is not None:
            doc.add_metadata(
                "meta",
                _format_number(metadata.series_index),
                refines=f"#{collection_id}",
                property="group-position",
            )
    doc.add_metadata(
        "meta", modified.strftime("%Y-%m-%dT%H:%M:%SZ"), property="dcterms:modified"
    )
    doc.add_metadata("meta", "pre-paginated", property="rendition:layout")
    doc.add_metadata("meta", "auto", property="rendition:spread")
    doc.add_metadata("meta", "auto", property="rendition:orientation")

    doc.add_item(ManifestItem(NAV_ID, NAV_HREF, XHTML_MEDIA_TYPE, {"nav"}))
    doc.add_item(ManifestItem(COVER_PAGE_ID, COVER_PAGE_HREF, XHTML_MEDIA_TYPE))
    if has_synopsis:
        doc.add_item(ManifestItem(SYNOPSIS_ID, SYNOPSIS_HREF, XHTML_MEDIA_TYPE))

    page_hrefs = [f"images/{page.name}" for page in pages]
    cover_item_id = COVER_IMAGE_ID
    if cover_href not in page_hrefs:
        doc.add_item(
            ManifestItem(COVER_IMAGE_ID, cover_href, cover_media_type, {"cover-image"})
        )
    for index, (page, href) in enumerate(zip(pages, page_hrefs), start=1):
        properties = set()
        if href == cover_href:
            properties.add("cover-image")
            cover_item_id = f"img{index}"
        doc.add_item(ManifestItem(f"img{index}", href, page.media_type, properties))
    for index, href in enumerate(page_documents, start=1):
        doc.add_item(ManifestItem(f"p{index}", href, XHTML_MEDIA_TYPE))

    # EPUB 2 readers find the cover through this meta rather than properties
    doc.add_metadata("meta", name="cover", content=cover_item_id)

    doc.add_itemref(COVER_PAGE_ID)
    if has_synopsis:
        doc.add_itemref(SYNOPSIS_ID)
    for index in range(1, len(page_documents) + 1):
        doc.add_itemref(f"p{index}")
    return doc
