# src/formengine/controllers/forms_backend.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from formengine.model import ApplicationResult, HighlightOptions


class FormsBackend(ABC):
    """Interface shared by the full engine and the minimal extractor behind the CompatibilityBridge."""

    mode: str = "enhanced"

    @abstractmethod
    def get_forms_data(self) -> List[Any]:
        raise NotImplementedError

    @abstractmethod
    def get_form(self, form_id: str) -> Optional[Any]:
        raise NotImplementedError

    @abstractmethod
    async def apply_values(self, values: Dict[str, Any], options: Optional[Any] = None) -> ApplicationResult:
        raise NotImplementedError

    @abstractmethod
    def highlight(self, targets: List[str], options: Optional[HighlightOptions] = None) -> int:
        raise NotImplementedError

    @abstractmethod
    def remove_highlight(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def refresh(self) -> Any:
        raise NotImplementedError
