# src/filters/description_enricher.py

"""Client-side marketing copy synthesized from a product name."""

import re
from dataclasses import replace

from src.models.product import ProductRecord

_CAPACITY_RE = re.compile(r"(\d+)\s*гб", re.IGNORECASE)
_DDR_RE = re.compile(r"\bDDR\d\b", re.IGNORECASE)
_FREQUENCY_RE = re.compile(r"(\d{4,5})\s*МГц", re.IGNORECASE)
_CLOCK_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*ГГц", re.IGNORECASE)
_CORES_RE = re.compile(r"(\d+)\s*(?:яд(?:ра|ер)|cores?)", re.IGNORECASE)
_SERIES_RE = re.compile(r"\b(RTX|GTX|RX)\s*\d{3,4}\b", re.IGNORECASE)

_FALLBACK_NAME = "Computer component"
_FALLBACK_BRAND = "Модуль"

_TONES = (
    "Стабильно работает в играх, многозадачности и ресурсоемких приложениях.",
    "Поддерживает плавный отклик системы при повседневной и профессиональной нагрузке.",
    "Сбалансирован для производительных сборок с акцентом на надежность и скорость.",
    "Практичный выбор для апгрейда, когда важны ресурс, стабильность и эффективность.",
)

_USAGES = (
    "Подойдет для игровых и рабочих станций, где важны стабильные результаты и комфорт в работе.",
    "Рекомендуется для энтузиастов и создателей контента, которым нужна предсказуемая производительность.",
    "Хорошо вписывается в современные платформы с упором на апгрейд и долгий срок службы.",
    "Уверенно закрывает задачи от повседневного использования до требовательных сценариев.",
)


def name_hash(value: str) -> int:
    """Unsigned 32-bit ``h * 31 + code`` hash over UTF-16 code units."""
    h = 0
    for unit in _utf16_units(value):
        h = (h * 31 + unit) & 0xFFFFFFFF
    return h


def _utf16_units(value: str) -> list[int]:
    data = value.encode("utf-16-le")
    return [
        int.from_bytes(data[i:i + 2], "little")
        for i in range(0, len(data), 2)
    ]


def brand_of(name: str) -> str:
    """First space-separated token of *name*."""
    return name.split(" ")[0] or _FALLBACK_BRAND


def spec_fragments(name: str) -> list[str]:
    """Recognised hardware specs in display order."""
    fragments: list[str] = []
    if m := _CAPACITY_RE.search(name):
        fragments.append(f"{m.group(1)} ГБ")
    if m := _DDR_RE.search(name):
        fragments.append(m.group(0).upper())
    if m := _FREQUENCY_RE.search(name):
        fragments.append(f"{m.group(1)} МГц")
    if m := _CLOCK_RE.search(name):
        fragments.append(f"{m.group(1).replace(',', '.')} ГГц")
    if m := _CORES_RE.search(name):
        fragments.append(f"{m.group(1)} ядер")
    if m := _SERIES_RE.search(name):
        fragments.append(m.group(0).upper())
    return fragments


def extract_specs(name: str) -> str:
    """One-sentence summary: brand plus the recognised spec fragments."""
    brand = brand_of(name)
    fragments = spec_fragments(name)
    if not fragments:
        return (
            f"{brand}: компонент для стабильной производительности "
            "в современных сборках ПК."
        )
    return (
        f"{brand}: конфигурация {' · '.join(fragments)} "
        "для мощной и сбалансированной системы."
    )


def pick_tone(seed: str) -> str:
    return _TONES[name_hash(seed) % len(_TONES)]


def pick_usage(seed: str) -> str:
    return _USAGES[(name_hash(seed) + 7) % len(_USAGES)]


def enrich(product: ProductRecord) -> ProductRecord:
    """Return a copy of *product* with its description filled in."""
    name = product.name or _FALLBACK_NAME
    description = (
        f"{extract_specs(name)} {pick_tone(name)} {pick_usage(name)}"
    )
    return replace(product, description=description)
