"""SQLite persistence gateway for dragonsheet.

Stores:
- Characters (indexed columns plus the full record as JSON)
- Reference catalogs (items, heroic abilities)
- Encounters and their combatant rows

Blocking sqlite3 calls run in a worker thread. Transient "database is
locked" errors are retried with exponential backoff; anything else
surfaces as RemoteError.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from collections.abc import Callable, Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from dragonsheet.core.config import StorageSettings, get_settings
from dragonsheet.core.exceptions import CharacterNotFoundError, RemoteError
from dragonsheet.core.logging import get_logger
from dragonsheet.models.catalog import GameItem, HeroicAbility
from dragonsheet.models.character import Character, CharacterUpdate
from dragonsheet.models.encounter import Combatant, CombatantUpdate, Encounter
from dragonsheet.models.enums import StatKind
from dragonsheet.storage.gateway import PersistenceGateway


logger = get_logger(__name__)

T = TypeVar("T")

_COMBATANT_COLUMNS = (
    "id, encounter_id, character_id, display_name, initiative_roll, "
    "current_hp, max_hp, current_wp, max_wp, has_acted"
)


def _character_from_row(row: sqlite3.Row) -> Character:
    return Character.model_validate(json.loads(row["data_json"]))


def _combatant_from_row(row: sqlite3.Row) -> Combatant:
    return Combatant(
        id=row["id"],
        encounter_id=row["encounter_id"],
        character_id=row["character_id"],
        display_name=row["display_name"],
        initiative_roll=row["initiative_roll"],
        current_hp=row["current_hp"],
        max_hp=row["max_hp"],
        current_wp=row["current_wp"],
        max_wp=row["max_wp"],
        has_acted=bool(row["has_acted"]),
    )


def _encounter_from_row(row: sqlite3.Row) -> Encounter:
    return Encounter(
        id=row["id"],
        party_id=row["party_id"],
        name=row["name"],
        status=row["status"],
        current_round=row["current_round"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


# =============================================================================
# Gateway
# =============================================================================


class SQLiteGateway(PersistenceGateway):
    """SQLite-backed PersistenceGateway.

    Seeding helpers (``add_*``) are synchronous; the gateway contract
    methods are coroutines.
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        db_path: str | Path | None = None,
        *,
        settings: StorageSettings | None = None,
    ) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the database file. Defaults to the configured path.
            settings: Storage settings; loaded from the environment if omitted.
        """
        self._settings = settings or get_settings().storage
        self.db_path = Path(db_path) if db_path is not None else self._settings.database_path

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

        logger.info("Database initialized", path=str(self.db_path))

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(str(self.db_path), timeout=1.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS characters (
                    id TEXT PRIMARY KEY,
                    user_id TEXT,
                    party_id TEXT,
                    data_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS items (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    data_json TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS heroic_abilities (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    data_json TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS encounters (
                    id TEXT PRIMARY KEY,
                    party_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    status TEXT NOT NULL,
                    current_round INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS combatants (
                    id TEXT PRIMARY KEY,
                    encounter_id TEXT NOT NULL REFERENCES encounters(id),
                    character_id TEXT,
                    display_name TEXT NOT NULL DEFAULT '',
                    initiative_roll INTEGER,
                    current_hp INTEGER NOT NULL DEFAULT 0,
                    max_hp INTEGER NOT NULL DEFAULT 0,
                    current_wp INTEGER,
                    max_wp INTEGER,
                    has_acted INTEGER NOT NULL DEFAULT 0,
                    UNIQUE (encounter_id, character_id)
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_encounters_party_created
                ON encounters(party_id, created_at DESC)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_combatants_encounter
                ON combatants(encounter_id)
            """)

            cursor.execute("""
                INSERT OR REPLACE INTO schema_version (version) VALUES (?)
            """, (self.SCHEMA_VERSION,))

    async def _run(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        """Run a blocking call in a thread, retrying while the database is locked.

        Raises:
            RemoteError: If the call fails with a database error.
        """

        @retry(
            retry=retry_if_exception_type(sqlite3.OperationalError),
            stop=stop_after_attempt(self._settings.retry_attempts),
            wait=wait_exponential(multiplier=0.1, max=self._settings.retry_max_wait_seconds),
            reraise=True,
        )
        def _call() -> T:
            return func(*args)

        try:
            return await asyncio.to_thread(_call)
        except sqlite3.Error as exc:
            logger.error("Database operation failed", operation=operation, error=str(exc))
            raise RemoteError(
                f"Database operation failed: {exc}",
                operation=operation,
            ) from exc

    # =========================================================================
    # Seeding
    # =========================================================================

    def add_character(self, character: Character) -> Character:
        now = datetime.now()
        character = character.model_copy(
            update={
                "created_at": character.created_at or now,
                "updated_at": character.updated_at or now,
            }
        )
        with self._get_connection() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO characters (id, user_id, party_id, data_json, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                character.id,
                character.user_id,
                character.party_id,
                character.model_dump_json(),
                character.created_at.isoformat(),
                character.updated_at.isoformat(),
            ))
        logger.info("Added character", character_id=character.id)
        return character

    def add_item(self, item: GameItem) -> None:
        with self._get_connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO items (id, name, data_json) VALUES (?, ?, ?)",
                (item.id, item.name, item.model_dump_json()),
            )

    def add_heroic_ability(self, ability: HeroicAbility) -> None:
        with self._get_connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO heroic_abilities (id, name, data_json) VALUES (?, ?, ?)",
                (ability.id, ability.name, ability.model_dump_json()),
            )

    def add_encounter(self, encounter: Encounter) -> Encounter:
        encounter = encounter.model_copy(update={"created_at": encounter.created_at or datetime.now()})
        with self._get_connection() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO encounters (id, party_id, name, status, current_round, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                encounter.id,
                encounter.party_id,
                encounter.name,
                encounter.status.value,
                encounter.current_round,
                encounter.created_at.isoformat(),
            ))
        return encounter

    def add_combatant(self, combatant: Combatant) -> Combatant:
        with self._get_connection() as conn:
            conn.execute(f"""
                INSERT OR REPLACE INTO combatants ({_COMBATANT_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                combatant.id,
                combatant.encounter_id,
                combatant.character_id,
                combatant.display_name,
                combatant.initiative_roll,
                combatant.current_hp,
                combatant.max_hp,
                combatant.current_wp,
                combatant.max_wp,
                int(combatant.has_acted),
            ))
        return combatant

    # =========================================================================
    # Characters
    # =========================================================================

    def _fetch_character_row(self, character_id: str) -> sqlite3.Row | None:
        with self._get_connection() as conn:
            return conn.execute(
                "SELECT id, user_id, data_json FROM characters WHERE id = ?",
                (character_id,),
            ).fetchone()

    async def get_character(self, character_id: str, user_id: str) -> Character:
        row = await self._run("get_character", self._fetch_character_row, character_id)
        if row is None or row["user_id"] != user_id:
            raise CharacterNotFoundError(
                "Character not found or you do not have access to it",
                character_id=character_id,
                user_id=user_id,
            )
        try:
            return _character_from_row(row)
        except (PydanticValidationError, json.JSONDecodeError) as exc:
            logger.error("Stored character is unreadable", character_id=character_id, error=str(exc))
            raise RemoteError(
                "Stored character could not be read",
                operation="get_character",
                record_id=character_id,
            ) from exc

    def _write_character_update(self, character_id: str, record: dict[str, Any]) -> Character:
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT data_json FROM characters WHERE id = ?",
                (character_id,),
            ).fetchone()
            if row is None:
                raise CharacterNotFoundError(
                    f"Character {character_id} not found",
                    character_id=character_id,
                )

            now = datetime.now()
            merged = {**json.loads(row["data_json"]), **record, "updated_at": now.isoformat()}
            character = Character.model_validate(merged)
            conn.execute("""
                UPDATE characters SET party_id = ?, data_json = ?, updated_at = ?
                WHERE id = ?
            """, (character.party_id, character.model_dump_json(), now.isoformat(), character_id))
        return character

    async def update_character(self, character_id: str, update: CharacterUpdate) -> Character:
        try:
            character = await self._run(
                "update_character",
                self._write_character_update,
                character_id,
                update.to_record(),
            )
        except PydanticValidationError as exc:
            raise RemoteError(
                f"Character update rejected: {exc.error_count()} invalid field(s)",
                operation="update_character",
                record_id=character_id,
            ) from exc
        logger.debug("Character row updated", character_id=character_id, fields=sorted(update.model_fields_set))
        return character

    def _raise_max_stat(self, character_id: str, kind: StatKind, amount: int) -> Character:
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT data_json FROM characters WHERE id = ?",
                (character_id,),
            ).fetchone()
            if row is None:
                raise CharacterNotFoundError(
                    f"Character {character_id} not found",
                    character_id=character_id,
                )

            data = json.loads(row["data_json"])
            maximum = data.get(kind.max_field)
            if maximum is None:
                raise RemoteError(
                    f"Cannot raise max {kind.value} before it is set",
                    operation="increase_max_stat",
                    record_id=character_id,
                )
            current = data.get(kind.current_field)
            if current is None:
                current = maximum

            now = datetime.now()
            data[kind.max_field] = maximum + amount
            data[kind.current_field] = max(0, current + amount)
            data["updated_at"] = now.isoformat()
            character = Character.model_validate(data)
            conn.execute(
                "UPDATE characters SET data_json = ?, updated_at = ? WHERE id = ?",
                (character.model_dump_json(), now.isoformat(), character_id),
            )
        return character

    async def increase_max_stat(self, character_id: str, kind: StatKind, amount: int) -> Character:
        try:
            return await self._run("increase_max_stat", self._raise_max_stat, character_id, StatKind(kind), amount)
        except PydanticValidationError as exc:
            raise RemoteError(
                f"Max stat increase rejected: {exc.error_count()} invalid field(s)",
                operation="increase_max_stat",
                record_id=character_id,
            ) from exc

    # =========================================================================
    # Reference catalogs
    # =========================================================================

    def _fetch_catalog(self, table: str) -> list[str]:
        with self._get_connection() as conn:
            rows = conn.execute(f"SELECT data_json FROM {table} ORDER BY name").fetchall()
        return [row["data_json"] for row in rows]

    async def list_items(self) -> list[GameItem]:
        rows = await self._run("list_items", self._fetch_catalog, "items")
        return [GameItem.model_validate_json(raw) for raw in rows]

    async def list_heroic_abilities(self) -> list[HeroicAbility]:
        rows = await self._run("list_heroic_abilities", self._fetch_catalog, "heroic_abilities")
        return [HeroicAbility.model_validate_json(raw) for raw in rows]

    # =========================================================================
    # Encounters
    # =========================================================================

    def _fetch_latest_encounter(self, party_id: str) -> Encounter | None:
        with self._get_connection() as conn:
            row = conn.execute("""
                SELECT id, party_id, name, status, current_round, created_at
                FROM encounters WHERE party_id = ?
                ORDER BY created_at DESC LIMIT 1
            """, (party_id,)).fetchone()
        return _encounter_from_row(row) if row else None

    async def get_latest_encounter_for_party(self, party_id: str) -> Encounter | None:
        return await self._run("get_latest_encounter_for_party", self._fetch_latest_encounter, party_id)

    def _fetch_combatants(self, encounter_id: str) -> list[Combatant]:
        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT {_COMBATANT_COLUMNS} FROM combatants WHERE encounter_id = ?",
                (encounter_id,),
            ).fetchall()
        return [_combatant_from_row(row) for row in rows]

    async def list_combatants(self, encounter_id: str) -> list[Combatant]:
        return await self._run("list_combatants", self._fetch_combatants, encounter_id)

    def _write_combatant_update(self, combatant_id: str, record: dict[str, Any]) -> Combatant | None:
        with self._get_connection() as conn:
            if record:
                if "has_acted" in record:
                    record["has_acted"] = int(record["has_acted"])
                assignments = ", ".join(f"{column} = ?" for column in record)
                conn.execute(
                    f"UPDATE combatants SET {assignments} WHERE id = ?",
                    (*record.values(), combatant_id),
                )
            row = conn.execute(
                f"SELECT {_COMBATANT_COLUMNS} FROM combatants WHERE id = ?",
                (combatant_id,),
            ).fetchone()
        return _combatant_from_row(row) if row else None

    async def update_combatant(self, combatant_id: str, update: CombatantUpdate) -> Combatant:
        combatant = await self._run(
            "update_combatant",
            self._write_combatant_update,
            combatant_id,
            update.to_record(),
        )
        if combatant is None:
            raise RemoteError(
                f"Combatant {combatant_id} not found",
                operation="update_combatant",
                record_id=combatant_id,
            )
        return combatant


__all__ = [
    "SQLiteGateway",
]
