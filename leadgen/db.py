"""
SQLite persistence for venue lead generation.

Stores campaigns, campaign rules, neighborhoods, venues, venue personnel and
per-rule neighborhood search tracking. Cascading deletes are done explicitly.
"""

import os
import sqlite3
import json
import uuid
import logging
from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime, timezone

from .errors import DuplicateVenueError, ValidationError

logger = logging.getLogger(__name__)

# Default path; override with LEADGEN_DB_PATH
DEFAULT_DB_DIR = "data"
DEFAULT_DB_NAME = "leadgen.db"

NEIGHBORHOOD_STATUSES = ("pending", "searching", "completed")
VENUE_STATUSES = ("new", "researched", "called", "skipped")

_VENUE_JSON_COLUMNS = ("opening_hours", "types")
_VENUE_UPDATABLE = {
    "status", "phone", "ai_research_raw", "website", "notion_exported",
    "opening_hours", "opening_days_count", "neighborhood_id",
}


def get_db_path() -> str:
    """Return path to SQLite DB file."""
    path = os.getenv("LEADGEN_DB_PATH")
    if path:
        return path
    os.makedirs(DEFAULT_DB_DIR, exist_ok=True)
    return os.path.join(DEFAULT_DB_DIR, DEFAULT_DB_NAME)


def _get_conn() -> sqlite3.Connection:
    """Get connection with row factory for dict-like rows."""
    conn = sqlite3.connect(get_db_path())
    conn.row_factory = sqlite3.Row
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


def _dumps(value: Any) -> Optional[str]:
    return json.dumps(value, default=str) if value is not None else None


def _loads(value: Optional[str]) -> Any:
    return json.loads(value) if value else None


def init_db() -> None:
    """Create tables if they do not exist."""
    conn = _get_conn()
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS campaigns (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                product_description TEXT,
                notion_token TEXT,
                notion_database_id TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS campaign_rules (
                id TEXT PRIMARY KEY,
                campaign_id TEXT NOT NULL,
                venue_type TEXT NOT NULL,
                min_rating REAL DEFAULT 0,
                min_opening_days INTEGER DEFAULT 0,
                exclude_chains INTEGER DEFAULT 0,
                exclude_keywords TEXT,
                custom_notes TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (campaign_id) REFERENCES campaigns(id)
            );

            CREATE TABLE IF NOT EXISTS neighborhoods (
                id TEXT PRIMARY KEY,
                campaign_id TEXT NOT NULL,
                name TEXT NOT NULL,
                display_name TEXT,
                boundary_polygon TEXT,
                status TEXT NOT NULL DEFAULT 'pending',
                venues_found INTEGER DEFAULT 0,
                searched_at TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (campaign_id) REFERENCES campaigns(id)
            );

            CREATE TABLE IF NOT EXISTS venues (
                id TEXT PRIMARY KEY,
                campaign_id TEXT NOT NULL,
                neighborhood_id TEXT,
                fsq_id TEXT NOT NULL,
                name TEXT NOT NULL,
                address TEXT,
                latitude REAL,
                longitude REAL,
                rating REAL,
                total_ratings INTEGER,
                opening_hours TEXT,
                opening_days_count INTEGER,
                phone TEXT,
                website TEXT,
                google_maps_url TEXT,
                types TEXT,
                ai_research_raw TEXT,
                status TEXT NOT NULL DEFAULT 'new',
                notion_exported INTEGER DEFAULT 0,
                created_at TEXT NOT NULL,
                FOREIGN KEY (campaign_id) REFERENCES campaigns(id),
                UNIQUE(campaign_id, fsq_id)
            );

            CREATE TABLE IF NOT EXISTS venue_personnel (
                id TEXT PRIMARY KEY,
                venue_id TEXT NOT NULL,
                name TEXT NOT NULL,
                title TEXT,
                phone TEXT,
                email TEXT,
                recommended_pitch TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (venue_id) REFERENCES venues(id)
            );

            CREATE TABLE IF NOT EXISTS neighborhood_searches (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                campaign_id TEXT NOT NULL,
                neighborhood_id TEXT NOT NULL,
                rule_id TEXT NOT NULL,
                venues_found INTEGER DEFAULT 0,
                searched_at TEXT NOT NULL,
                UNIQUE(neighborhood_id, rule_id)
            );

            CREATE INDEX IF NOT EXISTS idx_rules_campaign ON campaign_rules(campaign_id);
            CREATE INDEX IF NOT EXISTS idx_neighborhoods_campaign ON neighborhoods(campaign_id);
            CREATE INDEX IF NOT EXISTS idx_venues_campaign ON venues(campaign_id);
            CREATE INDEX IF NOT EXISTS idx_venues_neighborhood ON venues(neighborhood_id);
            CREATE INDEX IF NOT EXISTS idx_personnel_venue ON venue_personnel(venue_id);
        """)
        conn.commit()
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Campaigns and rules
# ---------------------------------------------------------------------------

def create_campaign(name: str, product_description: Optional[str] = None) -> Dict:
    """Create a campaign; return the stored row."""
    if not (name or "").strip():
        raise ValidationError("Campaign name is required")
    campaign_id = _new_id()
    now = _now()
    conn = _get_conn()
    try:
        conn.execute(
            "INSERT INTO campaigns (id, name, product_description, created_at) VALUES (?, ?, ?, ?)",
            (campaign_id, name.strip(), product_description or None, now),
        )
        conn.commit()
    finally:
        conn.close()
    logger.info("Created campaign %s (%s)", campaign_id[:8], name)
    return get_campaign(campaign_id)


def get_campaign(campaign_id: str) -> Optional[Dict]:
    conn = _get_conn()
    try:
        row = conn.execute("SELECT * FROM campaigns WHERE id = ?", (campaign_id,)).fetchone()
        return dict(row) if row else None
    finally:
        conn.close()


def list_campaigns() -> List[Dict]:
    """List campaigns, newest first."""
    conn = _get_conn()
    try:
        rows = conn.execute("SELECT * FROM campaigns ORDER BY created_at DESC").fetchall()
        return [dict(row) for row in rows]
    finally:
        conn.close()


def update_campaign_notion_settings(campaign_id: str, notion_token: Optional[str], notion_database_id: Optional[str]) -> None:
    """Attach (or clear) Notion export credentials on a campaign."""
    conn = _get_conn()
    try:
        conn.execute(
            "UPDATE campaigns SET notion_token = ?, notion_database_id = ? WHERE id = ?",
            (notion_token or None, notion_database_id or None, campaign_id),
        )
        conn.commit()
    finally:
        conn.close()


def create_campaign_rules(campaign_id: str, rules: Iterable) -> List[Dict]:
    """Insert CampaignRule objects for a campaign; return the stored rows."""
    now = _now()
    ids = []
    conn = _get_conn()
    try:
        for rule in rules:
            rule_id = _new_id()
            conn.execute(
                """INSERT INTO campaign_rules
                   (id, campaign_id, venue_type, min_rating, min_opening_days,
                    exclude_chains, exclude_keywords, custom_notes, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    rule_id,
                    campaign_id,
                    rule.venue_type,
                    rule.min_rating or 0,
                    rule.min_opening_days or 0,
                    1 if rule.exclude_chains else 0,
                    json.dumps([kw.strip() for kw in rule.exclude_keywords if kw and kw.strip()]),
                    rule.custom_notes,
                    now,
                ),
            )
            ids.append(rule_id)
        conn.commit()
    finally:
        conn.close()
    return [r for r in list_campaign_rules(campaign_id) if r["id"] in ids]


def _rule_from_row(row: sqlite3.Row) -> Dict:
    rule = dict(row)
    rule["exclude_chains"] = bool(rule["exclude_chains"])
    rule["exclude_keywords"] = _loads(rule["exclude_keywords"]) or []
    return rule


def list_campaign_rules(campaign_id: str, rule_id: Optional[str] = None) -> List[Dict]:
    """Rules of a campaign, optionally narrowed to one rule id."""
    conn = _get_conn()
    try:
        if rule_id:
            rows = conn.execute(
                "SELECT * FROM campaign_rules WHERE campaign_id = ? AND id = ?",
                (campaign_id, rule_id),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM campaign_rules WHERE campaign_id = ? ORDER BY created_at, rowid",
                (campaign_id,),
            ).fetchall()
        return [_rule_from_row(row) for row in rows]
    finally:
        conn.close()


def delete_campaign(campaign_id: str) -> int:
    """
    Delete a campaign and everything it owns.
    Returns number of venues deleted.
    """
    conn = _get_conn()
    try:
        venue_ids = [row["id"] for row in conn.execute(
            "SELECT id FROM venues WHERE campaign_id = ?", (campaign_id,)
        ).fetchall()]
        if venue_ids:
            placeholders = ",".join("?" * len(venue_ids))
            conn.execute(f"DELETE FROM venue_personnel WHERE venue_id IN ({placeholders})", venue_ids)
        conn.execute("DELETE FROM venues WHERE campaign_id = ?", (campaign_id,))
        conn.execute("DELETE FROM neighborhood_searches WHERE campaign_id = ?", (campaign_id,))
        conn.execute("DELETE FROM neighborhoods WHERE campaign_id = ?", (campaign_id,))
        conn.execute("DELETE FROM campaign_rules WHERE campaign_id = ?", (campaign_id,))
        conn.execute("DELETE FROM campaigns WHERE id = ?", (campaign_id,))
        conn.commit()
        return len(venue_ids)
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Neighborhoods
# ---------------------------------------------------------------------------

def _neighborhood_from_row(row: sqlite3.Row) -> Dict:
    nb = dict(row)
    nb["boundary_polygon"] = _loads(nb["boundary_polygon"])
    return nb


def create_neighborhood(
    campaign_id: str,
    name: str,
    display_name: Optional[str] = None,
    boundary: Optional[Dict] = None,
    status: str = "pending",
) -> Dict:
    """
    Create a neighborhood.

    Args:
        boundary: {lat, lng, boundingbox, geojson}; any subset
    """
    if status not in NEIGHBORHOOD_STATUSES:
        raise ValidationError(f"Invalid neighborhood status '{status}'")
    neighborhood_id = _new_id()
    conn = _get_conn()
    try:
        conn.execute(
            """INSERT INTO neighborhoods
               (id, campaign_id, name, display_name, boundary_polygon, status, venues_found, created_at)
               VALUES (?, ?, ?, ?, ?, ?, 0, ?)""",
            (neighborhood_id, campaign_id, name, display_name, _dumps(boundary), status, _now()),
        )
        conn.commit()
    finally:
        conn.close()
    return get_neighborhood(neighborhood_id)


def get_neighborhood(neighborhood_id: str) -> Optional[Dict]:
    conn = _get_conn()
    try:
        row = conn.execute("SELECT * FROM neighborhoods WHERE id = ?", (neighborhood_id,)).fetchone()
        return _neighborhood_from_row(row) if row else None
    finally:
        conn.close()


def find_neighborhood_by_name(campaign_id: str, name: str) -> Optional[Dict]:
    """Case-insensitive exact name match within a campaign."""
    conn = _get_conn()
    try:
        row = conn.execute(
            "SELECT * FROM neighborhoods WHERE campaign_id = ? AND lower(name) = lower(?) LIMIT 1",
            (campaign_id, name),
        ).fetchone()
        return _neighborhood_from_row(row) if row else None
    finally:
        conn.close()


def list_neighborhoods(campaign_id: str) -> List[Dict]:
    conn = _get_conn()
    try:
        rows = conn.execute(
            "SELECT * FROM neighborhoods WHERE campaign_id = ? ORDER BY created_at, rowid",
            (campaign_id,),
        ).fetchall()
        return [_neighborhood_from_row(row) for row in rows]
    finally:
        conn.close()


def update_neighborhood_status(
    neighborhood_id: str,
    status: str,
    new_venues: int = 0,
    stamp_searched: bool = False,
) -> None:
    """Set status; venues_found only ever grows by new_venues."""
    if status not in NEIGHBORHOOD_STATUSES:
        raise ValidationError(f"Invalid neighborhood status '{status}'")
    conn = _get_conn()
    try:
        if stamp_searched:
            conn.execute(
                """UPDATE neighborhoods
                   SET status = ?, venues_found = COALESCE(venues_found, 0) + ?, searched_at = ?
                   WHERE id = ?""",
                (status, max(0, new_venues), _now(), neighborhood_id),
            )
        else:
            conn.execute(
                "UPDATE neighborhoods SET status = ?, venues_found = COALESCE(venues_found, 0) + ? WHERE id = ?",
                (status, max(0, new_venues), neighborhood_id),
            )
        conn.commit()
    finally:
        conn.close()


def delete_neighborhood(neighborhood_id: str) -> int:
    """
    Delete a neighborhood, its venues (with personnel) and search records.
    Returns number of venues deleted.
    """
    conn = _get_conn()
    try:
        venue_ids = [row["id"] for row in conn.execute(
            "SELECT id FROM venues WHERE neighborhood_id = ?", (neighborhood_id,)
        ).fetchall()]
        if venue_ids:
            placeholders = ",".join("?" * len(venue_ids))
            conn.execute(f"DELETE FROM venue_personnel WHERE venue_id IN ({placeholders})", venue_ids)
            conn.execute(f"DELETE FROM venues WHERE id IN ({placeholders})", venue_ids)
        conn.execute("DELETE FROM neighborhood_searches WHERE neighborhood_id = ?", (neighborhood_id,))
        conn.execute("DELETE FROM neighborhoods WHERE id = ?", (neighborhood_id,))
        conn.commit()
        return len(venue_ids)
    finally:
        conn.close()


def upsert_neighborhood_search(campaign_id: str, neighborhood_id: str, rule_id: str, venues_found: int) -> None:
    """Record that a rule was searched in a neighborhood (latest run wins)."""
    conn = _get_conn()
    try:
        conn.execute(
            """INSERT INTO neighborhood_searches (campaign_id, neighborhood_id, rule_id, venues_found, searched_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(neighborhood_id, rule_id)
               DO UPDATE SET venues_found = excluded.venues_found, searched_at = excluded.searched_at""",
            (campaign_id, neighborhood_id, rule_id, venues_found, _now()),
        )
        conn.commit()
    finally:
        conn.close()


def list_neighborhood_searches(campaign_id: str) -> List[Dict]:
    conn = _get_conn()
    try:
        rows = conn.execute(
            """SELECT campaign_id, neighborhood_id, rule_id, venues_found, searched_at
               FROM neighborhood_searches WHERE campaign_id = ?""",
            (campaign_id,),
        ).fetchall()
        return [dict(row) for row in rows]
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Venues and personnel
# ---------------------------------------------------------------------------

def _venue_from_row(row: sqlite3.Row) -> Dict:
    venue = dict(row)
    for column in _VENUE_JSON_COLUMNS:
        venue[column] = _loads(venue[column])
    venue["types"] = venue["types"] or []
    venue["notion_exported"] = bool(venue["notion_exported"])
    return venue


def insert_venue(fields: Dict) -> Dict:
    """
    Insert a venue row; return the stored row.

    Raises:
        DuplicateVenueError: the campaign already has this fsq_id
    """
    venue_id = _new_id()
    conn = _get_conn()
    try:
        conn.execute(
            """INSERT INTO venues
               (id, campaign_id, neighborhood_id, fsq_id, name, address, latitude, longitude,
                rating, total_ratings, opening_hours, opening_days_count, phone, website,
                google_maps_url, types, status, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                venue_id,
                fields["campaign_id"],
                fields.get("neighborhood_id"),
                fields["fsq_id"],
                fields["name"],
                fields.get("address"),
                fields.get("latitude"),
                fields.get("longitude"),
                fields.get("rating"),
                fields.get("total_ratings"),
                _dumps(fields.get("opening_hours")),
                fields.get("opening_days_count"),
                fields.get("phone"),
                fields.get("website"),
                fields.get("google_maps_url"),
                _dumps(fields.get("types") or []),
                fields.get("status") or "new",
                _now(),
            ),
        )
        conn.commit()
    except sqlite3.IntegrityError as e:
        raise DuplicateVenueError(f"Venue {fields.get('fsq_id')} already exists in campaign") from e
    finally:
        conn.close()
    return get_venue(venue_id)


def get_venue(venue_id: str) -> Optional[Dict]:
    conn = _get_conn()
    try:
        row = conn.execute("SELECT * FROM venues WHERE id = ?", (venue_id,)).fetchone()
        return _venue_from_row(row) if row else None
    finally:
        conn.close()


def get_venues_by_campaign(
    campaign_id: str,
    neighborhood_id: Optional[str] = None,
    venue_ids: Optional[List[str]] = None,
) -> List[Dict]:
    """Venues of a campaign, optionally narrowed to a neighborhood or id list."""
    sql = "SELECT * FROM venues WHERE campaign_id = ?"
    params: List[Any] = [campaign_id]
    if neighborhood_id:
        sql += " AND neighborhood_id = ?"
        params.append(neighborhood_id)
    if venue_ids:
        sql += f" AND id IN ({','.join('?' * len(venue_ids))})"
        params.extend(venue_ids)
    sql += " ORDER BY created_at, rowid"
    conn = _get_conn()
    try:
        return [_venue_from_row(row) for row in conn.execute(sql, params).fetchall()]
    finally:
        conn.close()


def get_venue_external_ids(campaign_id: str) -> List[str]:
    """fsq_id of every venue in the campaign (dedup seed)."""
    conn = _get_conn()
    try:
        rows = conn.execute("SELECT fsq_id FROM venues WHERE campaign_id = ?", (campaign_id,)).fetchall()
        return [row["fsq_id"] for row in rows]
    finally:
        conn.close()


def get_venue_names(campaign_id: str) -> List[str]:
    conn = _get_conn()
    try:
        rows = conn.execute("SELECT name FROM venues WHERE campaign_id = ?", (campaign_id,)).fetchall()
        return [row["name"] for row in rows]
    finally:
        conn.close()


def update_venue(venue_id: str, **fields) -> None:
    """Update selected venue columns (status, phone, ai_research_raw, ...)."""
    unknown = set(fields) - _VENUE_UPDATABLE
    if unknown:
        raise ValidationError(f"Cannot update venue fields: {', '.join(sorted(unknown))}")
    if "status" in fields and fields["status"] not in VENUE_STATUSES:
        raise ValidationError(f"Invalid venue status '{fields['status']}'")
    if not fields:
        return

    updates = []
    params: List[Any] = []
    for column, value in fields.items():
        if column in _VENUE_JSON_COLUMNS:
            value = _dumps(value)
        elif column == "notion_exported":
            value = 1 if value else 0
        updates.append(f"{column} = ?")
        params.append(value)
    params.append(venue_id)

    conn = _get_conn()
    try:
        conn.execute(f"UPDATE venues SET {', '.join(updates)} WHERE id = ?", params)
        conn.commit()
    finally:
        conn.close()


def mark_venues_exported(venue_ids: List[str]) -> None:
    if not venue_ids:
        return
    conn = _get_conn()
    try:
        placeholders = ",".join("?" * len(venue_ids))
        conn.execute(f"UPDATE venues SET notion_exported = 1 WHERE id IN ({placeholders})", venue_ids)
        conn.commit()
    finally:
        conn.close()


def update_venues_status(venue_ids: List[str], status: str) -> int:
    """Set one status on several venues at once. Returns the number updated."""
    if status not in VENUE_STATUSES:
        raise ValidationError(f"Invalid venue status '{status}'")
    if not venue_ids:
        return 0
    conn = _get_conn()
    try:
        placeholders = ",".join("?" * len(venue_ids))
        cur = conn.execute(
            f"UPDATE venues SET status = ? WHERE id IN ({placeholders})",
            [status, *venue_ids],
        )
        conn.commit()
        return cur.rowcount
    finally:
        conn.close()


def insert_venue_personnel(venue_id: str, person: Dict) -> Dict:
    """Store one researched contact for a venue."""
    personnel_id = _new_id()
    conn = _get_conn()
    try:
        conn.execute(
            """INSERT INTO venue_personnel
               (id, venue_id, name, title, phone, email, recommended_pitch, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                personnel_id,
                venue_id,
                person["name"],
                person.get("title") or None,
                person.get("phone") or None,
                person.get("email") or None,
                person.get("recommended_pitch") or None,
                _now(),
            ),
        )
        conn.commit()
        row = conn.execute("SELECT * FROM venue_personnel WHERE id = ?", (personnel_id,)).fetchone()
        return dict(row)
    finally:
        conn.close()


def get_personnel_by_venues(venue_ids: List[str]) -> Dict[str, List[Dict]]:
    """Personnel grouped by venue id, in insertion order."""
    grouped: Dict[str, List[Dict]] = {}
    if not venue_ids:
        return grouped
    conn = _get_conn()
    try:
        placeholders = ",".join("?" * len(venue_ids))
        rows = conn.execute(
            f"SELECT * FROM venue_personnel WHERE venue_id IN ({placeholders}) ORDER BY created_at, rowid",
            venue_ids,
        ).fetchall()
        for row in rows:
            grouped.setdefault(row["venue_id"], []).append(dict(row))
        return grouped
    finally:
        conn.close()
