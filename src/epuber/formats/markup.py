# ABOUTME: XHTML and container markup for generated fixed-layout EPUBs.
# ABOUTME: Every string interpolated into markup goes through xml_escape first.

from xml.sax.saxutils import escape as _sax_escape

XHTML_MEDIA_TYPE = "application/xhtml+xml"
OPF_MEDIA_TYPE = "application/oebps-package+xml"

_QUOTE_ENTITIES = {'"': "&quot;"}


def xml_escape(text: str | None) -> str:
    """Escape &, <, > and double quotes for element text and attribute values."""
    if text is None:
        return ""
    return _sax_escape(str(text), _QUOTE_ENTITIES)


def fixed_page_xhtml(title: str, image_href: str, width: int, height: int) -> str:
    """A pre-paginated page showing a single image at its pixel size.

    The viewport pins the page to width x height and the stylesheet makes
    the image fill it exactly.
    """
    return f"""<?xml version="1.0" encoding="utf-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops">
  <head>
    <meta charset="utf-8"/>
    <title>{xml_escape(title)}</title>
    <meta name="viewport" content="width={width}, height={height}"/>
    <style>
      html, body {{ margin: 0; padding: 0; width: {width}px; height: {height}px; background: #fff; }}
      img {{ display: block; width: {width}px; height: {height}px; object-fit: fill; }}
    </style>
  </head>
  <body>
    <img src="{xml_escape(image_href)}" alt="{xml_escape(title)}" width="{width}" height="{height}"/>
  </body>
</html>
"""


def flow_xhtml(title: str, body: str, language: str) -> str:
    """A reflowable document; body must already be escaped markup."""
    lang = xml_escape(language)
    return f"""<?xml version="1.0" encoding="utf-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xml:lang="{lang}" lang="{lang}">
  <head>
    <meta charset="utf-8"/>
    <title>{xml_escape(title)}</title>
    <style>body {{ font-family: serif; line-height: 1.6; margin: 1.2em; }} h1, h2 {{ line-height: 1.25; }}</style>
  </head>
  <body>
    {body}
  </body>
</html>
"""


def synopsis_xhtml(synopsis: str, language: str, heading: str = "Synopsis") -> str:
    """Flow document holding the escaped synopsis, one paragraph per blank-line block."""
    paragraphs = [block.strip() for block in synopsis.strip().split("\n\n") if block.strip()]
    body = "".join(f"<p>{xml_escape(p)}</p>" for p in paragraphs)
    section = f'<section id="synopsis"><h2>{xml_escape(heading)}</h2>{body}</section>'
    return flow_xhtml(heading, section, language)


def nav_xhtml(entries: list[tuple[str, str]], language: str, heading: str = "Contents") -> str:
    """EPUB 3 navigation document listing (href, label) pairs in reading order."""
    lang = xml_escape(language)
    items = "\n".join(
        f'      <li><a href="{xml_escape(href)}">{xml_escape(label)}</a></li>'
        for href, label in entries
    )
    return f"""<?xml version="1.0" encoding="utf-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops" xml:lang="{lang}" lang="{lang}">
  <head>
    <meta charset="utf-8"/>
    <title>{xml_escape(heading)}</title>
  </head>
  <body>
    <nav epub:type="toc" id="toc">
      <h1>{xml_escape(heading)}</h1>
      <ol>
{items}
      </ol>
    </nav>
  </body>
</html>
"""


def container_xml(package_path: str) -> str:
    """META-INF/container.xml pointing at the package document."""
    return f"""<?xml version="1.0" encoding="utf-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{xml_escape(package_path)}" media-type="{OPF_MEDIA_TYPE}"/>
  </rootfiles>
</container>
"""
