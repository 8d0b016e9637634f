"""
services/competency_catalog.py

Read-only lookup of scoring criteria.
- personality rows apply to every track
- technical rows are filtered to the placement's track (or the GENERAL sentinel)
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.competency_templates import ALL_TRACKS, CompetencyTemplate

logger = logging.getLogger(__name__)

# catalog used by scripts/import_competency_templates.py when no CSV is given
DEFAULT_TEMPLATES = [
    # Personality (every major)
    {"category": "personality", "name": "Disiplin", "track": ALL_TRACKS, "weight": 20},
    {"category": "personality", "name": "Kerja Sama", "track": ALL_TRACKS, "weight": 20},
    {"category": "personality", "name": "Inisiatif", "track": ALL_TRACKS, "weight": 20},
    {"category": "personality", "name": "Tanggung Jawab", "track": ALL_TRACKS, "weight": 20},
    {"category": "personality", "name": "Kerajinan", "track": ALL_TRACKS, "weight": 20},
    # Technical - TKJ
    {"category": "technical", "name": "Penerapan K3LH", "track": "TKJ", "weight": 10},
    {"category": "technical", "name": "Merakit Komputer", "track": "TKJ", "weight": 15},
    {"category": "technical", "name": "Instalasi Sistem Operasi", "track": "TKJ", "weight": 15},
    {"category": "technical", "name": "Instalasi Jaringan Lokal (LAN)", "track": "TKJ", "weight": 20},
    {"category": "technical", "name": "Konfigurasi Routing", "track": "TKJ", "weight": 20},
    {"category": "technical", "name": "Perbaikan Periferal", "track": "TKJ", "weight": 20},
    # Technical - RPL
    {"category": "technical", "name": "Pemrograman Dasar", "track": "RPL", "weight": 15},
    {"category": "technical", "name": "Basis Data", "track": "RPL", "weight": 15},
    {"category": "technical", "name": "Pemrograman Berorientasi Objek", "track": "RPL", "weight": 20},
    {"category": "technical", "name": "Pemrograman Web Dinamis", "track": "RPL", "weight": 25},
    {"category": "technical", "name": "Desain Grafis / UI UX", "track": "RPL", "weight": 25},
]


def _ordered(query):
    return query.order_by(CompetencyTemplate.position, CompetencyTemplate.id)


def list_for(db: Session, track: Optional[str]) -> Dict[str, List[CompetencyTemplate]]:
    personality = _ordered(
        db.query(CompetencyTemplate).filter(CompetencyTemplate.category == "personality")
    ).all()

    technical_query = db.query(CompetencyTemplate).filter(CompetencyTemplate.category == "technical")
    if track:
        technical_query = technical_query.filter(
            or_(CompetencyTemplate.track == track, CompetencyTemplate.track == ALL_TRACKS)
        )
    else:
        technical_query = technical_query.filter(CompetencyTemplate.track == ALL_TRACKS)
    technical = _ordered(technical_query).all()

    return {"personality": personality, "technical": technical}


def applicable_templates(db: Session, track: Optional[str]) -> List[CompetencyTemplate]:
    """Flat list, personality first, in display order."""
    grouped = list_for(db, track)
    return grouped["personality"] + grouped["technical"]


def seed_templates(db: Session, rows: Iterable[dict]) -> int:
    """Insert catalog rows missing by (name, category, track). Returns the number added."""
    added = 0
    for index, row in enumerate(rows):
        track = row.get("track") or ALL_TRACKS
        existing = (
            db.query(CompetencyTemplate)
            .filter(
                CompetencyTemplate.name == row["name"],
                CompetencyTemplate.category == row["category"],
                CompetencyTemplate.track == track,
            )
            .first()
        )
        if existing:
            continue
        db.add(CompetencyTemplate(
            name=row["name"],
            category=row["category"],
            track=track,
            weight=row.get("weight"),
            position=int(row["position"]) if row.get("position") not in (None, "") else index,
        ))
        added += 1
        logger.info(f"competency template added: [{row['category']}] {row['name']} ({track})")

    db.commit()
    return added
