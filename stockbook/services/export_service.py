from __future__ import annotations

from datetime import date

from stockbook.entities import StateBundle
from stockbook.schemas import bundle_from_json, bundle_to_json


def export_filename(*, prefix: str = 'stockbook_backup', today: date | None = None) -> str:
    return f'{prefix}_{(today or date.today()).isoformat()}.json'


def export_bundle(bundle: StateBundle) -> str:
    return bundle_to_json(bundle, indent=2)


def parse_import(text: str | bytes) -> StateBundle:
    return bundle_from_json(text)
