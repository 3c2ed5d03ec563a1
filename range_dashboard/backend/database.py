# backend/database.py
import aiosqlite # type: ignore
import os
import json
import time
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from . import config
from .state import Shot, Metrics

SESSION_COLUMNS = """
    id, created_at, shot_count, group_size, center_x, center_y,
    group_offset, consistency, elapsed, cadence, advice, skill_level, camera_session_id
"""


async def get_db():
    """Get database connection"""
    db_path = os.path.join(os.path.dirname(__file__), config.DATABASE_PATH)
    os.makedirs(os.path.dirname(db_path), exist_ok=True)
    return await aiosqlite.connect(db_path)


async def init_db():
    """Initialize database with schema"""
    db = await get_db()
    try:
        await db.execute("PRAGMA foreign_keys = ON")

        await db.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at REAL NOT NULL,
                shot_count INTEGER DEFAULT 0,
                group_size REAL DEFAULT 0,
                center_x REAL DEFAULT 0,
                center_y REAL DEFAULT 0,
                group_offset REAL DEFAULT 0,
                consistency REAL DEFAULT 0,
                elapsed REAL DEFAULT 0,
                cadence REAL DEFAULT 0,
                advice TEXT,
                skill_level TEXT,
                camera_session_id TEXT
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS shots (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id INTEGER NOT NULL,
                shot_number INTEGER NOT NULL,
                timestamp REAL NOT NULL,
                x REAL NOT NULL,
                y REAL NOT NULL,
                detection_id TEXT,
                width REAL,
                height REAL,
                confidence REAL,
                class_name TEXT,
                FOREIGN KEY (session_id) REFERENCES sessions(id) ON DELETE CASCADE
            )
        """)

        await db.execute("CREATE INDEX IF NOT EXISTS idx_sessions_created_at ON sessions(created_at DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_shots_session_id ON shots(session_id)")

        await db.commit()
        print("[DB] Database initialized successfully")
    finally:
        await db.close()


async def create_session(
    shots: List[Shot],
    metrics: Metrics,
    advice: Optional[List[str]] = None,
    skill_level: Optional[str] = None,
    camera_session_id: Optional[str] = None,
) -> int:
    """Persist a finished session with its shots and return session_id"""
    db = await get_db()
    try:
        cursor = await db.execute("""
            INSERT INTO sessions (
                created_at, shot_count, group_size, center_x, center_y,
                group_offset, consistency, elapsed, cadence,
                advice, skill_level, camera_session_id
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            time.time(), len(shots), metrics.group_size,
            metrics.group_center[0], metrics.group_center[1],
            metrics.group_offset, metrics.consistency, metrics.time, metrics.cadence,
            json.dumps(advice or []), skill_level, camera_session_id,
        ))
        session_id = cursor.lastrowid

        await db.executemany("""
            INSERT INTO shots (
                session_id, shot_number, timestamp, x, y,
                detection_id, width, height, confidence, class_name
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, [
            (session_id, i, s.timestamp, s.x, s.y,
             s.detection_id, s.width, s.height, s.confidence, s.class_name)
            for i, s in enumerate(shots, start=1)
        ])

        await db.commit()
        print(f"[DB] Created session {session_id}: {len(shots)} shots")
        return session_id
    finally:
        await db.close()


def _session_row(row) -> Dict[str, Any]:
    created_at = row[1]
    metrics = Metrics(
        group_size=row[3],
        group_center=(row[4], row[5]),
        group_offset=row[6],
        consistency=row[7],
        time=row[8],
        cadence=row[9],
    )
    return {
        "id": row[0],
        "created_at": created_at,
        "date": datetime.fromtimestamp(created_at, tz=timezone.utc).isoformat(),
        "shot_count": row[2],
        "metrics": metrics.to_dict(),
        "advice": json.loads(row[10]) if row[10] else [],
        "skill_level": row[11],
        "camera_session_id": row[12],
    }


async def get_session(session_id: int) -> Optional[Dict[str, Any]]:
    """Get a session with all its shots"""
    db = await get_db()
    try:
        async with db.execute(f"""
            SELECT {SESSION_COLUMNS}
            FROM sessions
            WHERE id = ?
        """, (session_id,)) as cursor:
            row = await cursor.fetchone()
            if not row:
                return None
            session = _session_row(row)

        shots = []
        async with db.execute("""
            SELECT x, y, timestamp, detection_id, width, height, confidence, class_name
            FROM shots
            WHERE session_id = ?
            ORDER BY shot_number
        """, (session_id,)) as cursor:
            async for row in cursor:
                shots.append(Shot(
                    x=row[0],
                    y=row[1],
                    timestamp=row[2],
                    detection_id=row[3],
                    width=row[4],
                    height=row[5],
                    confidence=row[6],
                    class_name=row[7],
                ).to_dict())

        session["shots"] = shots
        return session
    finally:
        await db.close()


async def list_sessions(limit: int = 50, offset: int = 0) -> Dict[str, Any]:
    """List sessions, newest first, with pagination"""
    db = await get_db()
    try:
        async with db.execute("SELECT COUNT(*) FROM sessions") as cursor:
            row = await cursor.fetchone()
            total = row[0]

        sessions = []
        async with db.execute(f"""
            SELECT {SESSION_COLUMNS}
            FROM sessions
            ORDER BY created_at DESC, id DESC
            LIMIT ? OFFSET ?
        """, (limit, offset)) as cursor:
            async for row in cursor:
                sessions.append(_session_row(row))

        return {"sessions": sessions, "total": total}
    finally:
        await db.close()
