import csv
import os
import sys

from sqlalchemy.orm import Session
from database.db import SessionLocal
from services.competency_catalog import DEFAULT_TEMPLATES, seed_templates

CSV_PATH = "data/competency_templates.csv"  # ✅ file path

def read_rows(path: str):
    with open(path, newline="", encoding="utf-8-sig") as csvfile:
        reader = csv.DictReader(csvfile)
        return [
            {
                "category": row["category"],                 # personality | technical
                "name": row["name"],                         # criterion name
                "track": row.get("track") or "GENERAL",      # track code
                "weight": float(row["weight"]) if row.get("weight") else None,
                "position": row.get("position"),
            }
            for row in reader
        ]

def migrate_competency_templates(path: str = CSV_PATH):
    rows = read_rows(path) if os.path.exists(path) else DEFAULT_TEMPLATES
    db: Session = SessionLocal()
    try:
        added = seed_templates(db, rows)
    finally:
        db.close()
    print(f"✅ competency templates CSV -> DB done ({added} added)")

if __name__ == "__main__":
    migrate_competency_templates(sys.argv[1] if len(sys.argv) > 1 else CSV_PATH)
