"""
CurriculumResolver — the authoritative, ordered list of billable units
("periods") for a course.

Two sources:
    - Dynamic courses (type "4"): live period entries from the catalog,
      linked by config.id_curso or, for legacy rows, by parent_id.
    - Everything else, and dynamic courses with no linked periods or an
      unreachable catalog: the course's own stored module list.

The result feeds the document fingerprint, so for a fixed catalog snapshot
it must come out identical on every call.
"""

from __future__ import annotations

from typing import Any

from docflow.core.constants import DYNAMIC_COURSE_TYPE
from docflow.core.logging import get_logger
from docflow.curriculum.catalog import PeriodCatalog, PeriodEntry
from docflow.curriculum.normalize import decode_json_list

logger = get_logger(__name__)


def is_dynamic(course: Any) -> bool:
    """True when the course type selects catalog period substitution."""
    course_type = getattr(course, "course_type", None)
    if course_type is None:
        return False
    return str(course_type).strip() == DYNAMIC_COURSE_TYPE


def stored_modules(course: Any) -> list[Any]:
    """The course's own module list, decoded; [] when missing or malformed."""
    return decode_json_list(getattr(course, "modules", None)) or []


def period_to_unit(entry: PeriodEntry) -> dict[str, Any]:
    """Map a catalog period to the unit shape documents consume."""
    config = entry.config if isinstance(entry.config, dict) else {}
    if "id_curso" in config:
        course_ref = config["id_curso"]
    else:
        course_ref = entry.parent_id or None

    return {
        "id": entry.id,
        "nome": entry.title,
        "slug": entry.slug,
        "id_curso": course_ref,
        "id_contratos": config.get("id_contratos", []),
        "valor": config.get("valor"),
        "tipo_modulo": config.get("tipo_modulo"),
        "cursos_incluidos": config.get("cursos_incluidos", []),
        "h_praticas": config.get("h_praticas"),
        "h_teoricas": config.get("h_teoricas"),
        "aeronaves": config.get("aeronaves", []),
        "status": entry.status,
    }


async def resolve(course: Any, catalog: PeriodCatalog) -> list[dict[str, Any]]:
    """
    Resolve the ordered period units for `course`.

    Never raises for data problems: a catalog failure is logged and treated
    as "no linked periods", and undecodable stored modules give [].
    """
    if not is_dynamic(course):
        return stored_modules(course)

    try:
        entries = await catalog.periods_for_course(course.id)
    except Exception as exc:
        logger.warning(
            "Period catalog unavailable, using stored modules",
            course_id=course.id,
            error=str(exc),
        )
        entries = []

    if not entries:
        logger.info("No catalog periods linked to course, using stored modules", course_id=course.id)
        return stored_modules(course)

    # Catalogs are expected to order already; re-sorting keeps the
    # fingerprint stable whatever the backing store returns.
    ordered = sorted(entries, key=lambda e: (e.menu_order, -e.id))
    return [period_to_unit(entry) for entry in ordered]
