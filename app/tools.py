"""Automation tool catalogue and record presentation helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from hubsync.fields import field_value, resolve_field_key
from hubsync.records import Record


STATUS_FIELD_NAME = "Status"
STATUS_TODO = "Do zrobienia"
STATUS_IN_PROGRESS = "W trakcie"
STATUS_DONE = "Zrobione"

FIELD_KINDS = ("text", "textarea", "url", "select", "number", "checkbox", "attachment")
FORM_MODES = (None, "create", "edit")

_TITLE_FALLBACK_KEYS = ("temat", "nazwa", "nazwa produktu", "title", "subject", "name", "produkt")
_STATUS_TONES = {
    "done": "done",
    "zrobione": "done",
    "in progress": "in_progress",
    "w trakcie": "in_progress",
    "error": "error",
    "błąd": "error",
}


@dataclass(frozen=True)
class FieldSpec:
    key: str
    label: str
    kind: str = "text"
    required: bool = False
    options: Tuple[str, ...] = ()
    placeholder: str | None = None
    mode: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in FIELD_KINDS:
            raise ValueError(f"unknown field kind: {self.kind}")
        if self.mode not in FORM_MODES:
            raise ValueError(f"unknown form mode: {self.mode}")

    def visible_in(self, mode: str) -> bool:
        return self.mode is None or self.mode == mode

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "kind": self.kind,
            "required": self.required,
            "options": list(self.options),
            "placeholder": self.placeholder,
            "mode": self.mode,
        }


@dataclass(frozen=True)
class ToolDefinition:
    id: str
    label: str
    table: str
    description: str
    input_fields: Tuple[FieldSpec, ...]
    output_fields: Tuple[str, ...] = ()

    def field(self, key: str) -> FieldSpec | None:
        lowered = key.lower()
        for spec in self.input_fields:
            if spec.key.lower() == lowered:
                return spec
        return None

    def fields_for(self, mode: str) -> list[FieldSpec]:
        return [spec for spec in self.input_fields if spec.visible_in(mode)]

    @property
    def attachment_keys(self) -> list[str]:
        return [spec.key for spec in self.input_fields if spec.kind == "attachment"]

    def configured_keys(self) -> list[str]:
        keys = [spec.key for spec in self.input_fields]
        keys.extend(self.output_fields)
        keys.append(STATUS_FIELD_NAME)
        return keys

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "table": self.table,
            "description": self.description,
            "input_fields": [spec.to_dict() for spec in self.input_fields],
            "output_fields": list(self.output_fields),
        }


AUTOMATION_TOOLS: Tuple[ToolDefinition, ...] = (
    ToolDefinition(
        id="internet-articles",
        label="Artykuły z Internetu",
        table="Artykuły z Internetu",
        description="Generuje artykuły na podstawie podanych linków i tematów znalezionych w sieci.",
        input_fields=(
            FieldSpec("Temat", "Temat / Tytuł", "text", required=True, placeholder="Wpisz temat artykułu..."),
            FieldSpec("Link", "Link do artykułu źródłowego", "url", required=True, placeholder="https://..."),
            FieldSpec("Słowa kluczowe", "Słowa kluczowe", "text", placeholder="fraza1, fraza2"),
        ),
        output_fields=("Treść", "Podsumowanie", "Social Media"),
    ),
    ToolDefinition(
        id="product-desc",
        label="Generator Opisów Produktów",
        table="Generator opisów produktowych",
        description="Generuje zoptymalizowane pod SEO opisy produktów na podstawie nazwy lub URL.",
        input_fields=(
            FieldSpec("Nazwa produktu", "Nazwa Produktu", "text", required=True, placeholder="np. Kabel światłowodowy..."),
            FieldSpec("URL", "Link do źródła (opcjonalnie)", "url", placeholder="https://..."),
            FieldSpec("Słowa kluczowe", "Słowa kluczowe", "text", placeholder="cena, opinie, sklep"),
            FieldSpec("Zdjęcie", "Zdjęcie produktu", "attachment", mode="edit"),
        ),
        output_fields=("Opis produktu", "Tytuł SEO", "Meta opis"),
    ),
    ToolDefinition(
        id="competitor-search",
        label="Wyszukiwarka Odpowiedników",
        table="Wyszukiwarka odpowiedników produktów",
        description="Wyszukuje odpowiedniki produktów i analizuje konkurencję.",
        input_fields=(
            FieldSpec("Nazwa produktu", "Nazwa szukanego produktu", "text", required=True),
            FieldSpec("Marka", "Marka / Producent", "text"),
        ),
        output_fields=("Znalezione odpowiedniki", "Raport"),
    ),
    ToolDefinition(
        id="expert-article",
        label="Artykuły Eksperckie SEO",
        table="Generator artykułów eksperckich SEO",
        description="Tworzy rozbudowane, profesjonalne artykuły blogowe pod pozycjonowanie.",
        input_fields=(
            FieldSpec("Temat", "Temat artykułu", "text", required=True, placeholder="np. Zalety sieci 5G"),
            FieldSpec("Słowa kluczowe", "Słowa kluczowe SEO", "text", placeholder="5g, internet, prędkość"),
            FieldSpec("Wytyczne", "Dodatkowe wytyczne", "textarea"),
        ),
        output_fields=("Treść artykułu", "Nagłówki", "Meta description"),
    ),
    ToolDefinition(
        id="general-article",
        label="Artykuły Ogólne",
        table="Generator artykułów ogólnych",
        description="Generuje proste artykuły ogólne i treści na stronę.",
        input_fields=(
            FieldSpec("Temat", "Temat", "text", required=True),
            FieldSpec("Cel", "Cel tekstu", "select", options=("Informacyjny", "Rozrywkowy", "News")),
        ),
        output_fields=("Treść artykułu",),
    ),
)


def tools_by_id(tools: Tuple[ToolDefinition, ...] = AUTOMATION_TOOLS) -> Dict[str, ToolDefinition]:
    return {tool.id: tool for tool in tools}


def status_tone(status: Any) -> str:
    """Classify a status value for the badge: done, in_progress, error or pending."""
    if not isinstance(status, str):
        return "pending"
    return _STATUS_TONES.get(status.strip().lower(), "pending")


def record_title(tool: ToolDefinition, record: Record) -> str:
    if tool.input_fields:
        value = field_value(record, tool.input_fields[0].key)
        if value:
            return str(value)
    for key in _TITLE_FALLBACK_KEYS:
        value = field_value(record, key)
        if value:
            return str(value)
    return f"Bez tytułu ({record.id[-4:]})"


def remaining_fields(tool: ToolDefinition, record: Record) -> List[str]:
    """Actual keys on the record that none of the tool's configured fields resolve to."""
    shown = set()
    for key in tool.configured_keys():
        actual = resolve_field_key(record, key)
        if actual:
            shown.add(actual)
    return [key for key in record.fields if key not in shown and key not in ("id", "createdTime")]
