"""Seed a demo doctor-patient conversation.

Usage (from repository root):
    python scripts/seed_demo.py
    # or
    python -m scripts.seed_demo --conversation-id consult-demo-001
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Make `medbridge` imports work when the script is run from any directory.
PROJECT_DIR = Path(__file__).resolve().parents[1]
if str(PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(PROJECT_DIR))

from medbridge.db.base import Base
from medbridge.db.session import SessionLocal, engine
from medbridge.schemas.message import MessageCreate
from medbridge.services.messages import create_messages_batch, delete_all_messages


DEFAULT_CONVERSATION_ID = "consult-demo-001"


def build_demo_messages(now: datetime | None = None) -> list[MessageCreate]:
    """Return a deterministic English/Spanish consultation spread over two days."""

    anchor = (now or datetime.now(timezone.utc)).replace(second=0, microsecond=0)
    yesterday = anchor - timedelta(days=1, hours=2)
    payloads = [
        (yesterday, "doctor", "en", "Good morning. What brings you in today?", "Buenos días. ¿Qué le trae por aquí hoy?"),
        (
            yesterday + timedelta(minutes=1),
            "patient",
            "es",
            "Tengo fiebre y dolor de cabeza desde hace tres días.",
            "I have had a fever and a headache for three days.",
        ),
        (
            yesterday + timedelta(minutes=2),
            "doctor",
            "en",
            "Are you taking any medication for the fever?",
            "¿Está tomando algún medicamento para la fiebre?",
        ),
        (
            anchor - timedelta(minutes=5),
            "patient",
            "es",
            "Sí, tomo paracetamol 500 mg cada ocho horas.",
            "Yes, I take paracetamol 500 mg every eight hours.",
        ),
        (
            anchor - timedelta(minutes=4),
            "doctor",
            "en",
            "Please get a blood test and come back on Friday.",
            "Por favor hágase un análisis de sangre y regrese el viernes.",
        ),
    ]
    return [
        MessageCreate(
            sender_role=role,
            language=language,
            original_content=original,
            translated_content=translated,
            created_at=created_at,
        )
        for created_at, role, language, original, translated in payloads
    ]


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a demo consultation.")
    parser.add_argument("--conversation-id", default=DEFAULT_CONVERSATION_ID)
    parser.add_argument("--keep-existing", action="store_true", help="Do not delete existing messages first.")
    args = parser.parse_args()

    Base.metadata.create_all(engine)
    with SessionLocal() as db:
        if not args.keep_existing:
            removed = delete_all_messages(db, args.conversation_id)
            print(f"Removed {removed} existing messages from {args.conversation_id}.")
        created = create_messages_batch(db, args.conversation_id, build_demo_messages())
        print(f"Seeded {len(created)} messages into {args.conversation_id}.")


if __name__ == "__main__":
    main()
