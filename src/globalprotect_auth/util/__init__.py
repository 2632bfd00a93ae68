from .host import normalize_server, remove_url_scheme
from .xml import descendant_text, descendant_texts, parse_xml

__all__ = ["normalize_server", "remove_url_scheme", "parse_xml", "descendant_text", "descendant_texts"]
