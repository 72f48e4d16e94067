# src/formengine/services/metadata.py
import logging
from typing import List

from formengine.model import DocumentMetadata

logger = logging.getLogger(__name__)

# (selector, name) pairs; markup fingerprints only, no script inspection.
FRAMEWORK_MARKERS = (
    ("[ng-app]", "AngularJS"),
    ("[ng-version]", "Angular"),
    ("[data-reactroot]", "React"),
)
FORM_LIBRARY_MARKERS = (
    (".formik", "Formik"),
    ("[data-form]", "React Hook Form"),
    (".form-group", "Bootstrap Forms"),
    (".field", "Semantic UI"),
)


class MetadataService:
    """Document-level facts recorded with every snapshot."""

    def __init__(self, doc):
        self.doc = doc

    def frameworks(self) -> List[str]:
        found: List[str] = []
        for selector, name in FRAMEWORK_MARKERS:
            if self.doc.select_one(selector) is not None and name not in found:
                found.append(name)
        # Vue scoped styles add data-v-<hash> attributes.
        if any(
                any(attr.startswith("data-v-") for attr in tag.attrs)
                for tag in self.doc.soup.find_all(True)
        ):
            found.append("Vue")
        return found

    def form_libraries(self) -> List[str]:
        return [name for selector, name in FORM_LIBRARY_MARKERS if self.doc.select_one(selector) is not None]

    def viewport(self) -> str:
        meta = self.doc.soup.find("meta", attrs={"name": "viewport"})
        return str(meta.get("content", "")) if meta is not None else ""

    def charset(self) -> str:
        meta = self.doc.soup.find("meta", attrs={"charset": True})
        if meta is not None:
            return str(meta["charset"])
        http_equiv = self.doc.soup.find("meta", attrs={"http-equiv": lambda v: v and v.lower() == "content-type"})
        if http_equiv is not None:
            content = str(http_equiv.get("content", ""))
            if "charset=" in content:
                return content.split("charset=", 1)[1].strip()
        return ""

    def language(self) -> str:
        html = self.doc.soup.find("html")
        return str(html.get("lang", "")) if html is not None else ""

    def has_shadow_dom(self) -> bool:
        return self.doc.soup.find("template", attrs={"shadowrootmode": True}) is not None

    def has_custom_elements(self) -> bool:
        return self.doc.soup.find(lambda tag: "-" in tag.name) is not None

    def extract(self) -> DocumentMetadata:
        return DocumentMetadata(
            source=self.doc.source or "",
            title=self.doc.title,
            charset=self.charset(),
            language=self.language(),
            viewport=self.viewport(),
            frameworks=self.frameworks(),
            form_libraries=self.form_libraries(),
            has_shadow_dom=self.has_shadow_dom(),
            has_custom_elements=self.has_custom_elements(),
        )
