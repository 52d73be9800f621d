import json
from typing import Any

import psycopg
from psycopg.rows import dict_row

from app.database.connection import Database
from app.database.models import OnboardingRecord
from app.processor.exceptions import OnboardingReadError


class OnboardingRepository:
    """Read-only access to the onboardings table."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def find_by_id(self, onboarding_id: str) -> OnboardingRecord | None:
        """Find an onboarding by ID.

        Returns None when no row matches.

        Raises:
            OnboardingReadError: if the database cannot be queried.
        """
        try:
            with self._database.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        """
                        SELECT id, subsidiary, is_form_complete, india_form_data
                        FROM onboardings
                        WHERE id::text = %s
                        """,
                        (onboarding_id,),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise OnboardingReadError(
                f"Failed to read onboarding {onboarding_id}: {exc}"
            ) from exc

        if row is None:
            return None

        try:
            form_data = _as_dict(row["india_form_data"])
        except json.JSONDecodeError as exc:
            raise OnboardingReadError(
                f"Onboarding {onboarding_id} has malformed india_form_data: {exc}"
            ) from exc

        return OnboardingRecord(
            id=str(row["id"]),
            subsidiary=row["subsidiary"],
            is_form_complete=bool(row["is_form_complete"]),
            india_form_data=form_data,
        )


def _as_dict(raw: Any) -> dict[str, Any] | None:
    """JSONB arrives decoded; plain json/text columns arrive as str."""
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, dict):
        return None
    return raw
