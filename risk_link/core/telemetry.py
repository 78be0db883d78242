from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import duckdb

from risk_link.core.config import get_settings


def utc_now() -> str:
    """현재 UTC 시각을 ISO8601(Z) 문자열로 반환"""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class TelemetryStore:
    """실행 로그와 상태를 저장하는 DuckDB 텔레메트리 저장소

    환자 레코드는 저장하지 않는다.
    """

    _instance: "TelemetryStore | None" = None

    def __new__(cls) -> "TelemetryStore":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init_db()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """연결을 닫고 싱글턴을 초기화"""
        if cls._instance is not None:
            cls._instance._conn.close()
        cls._instance = None

    def _init_db(self) -> None:
        settings = get_settings()
        Path(settings.duckdb_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = duckdb.connect(settings.duckdb_path)
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS logs (
                timestamp TIMESTAMP,
                level VARCHAR,
                event VARCHAR,
                run_id VARCHAR,
                stage VARCHAR,
                error_code VARCHAR,
                message VARCHAR,
                duration_ms INTEGER,
                record_count INTEGER
            )
            """
        )
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS run_status (
                run_id VARCHAR,
                started_at TIMESTAMP,
                finished_at TIMESTAMP,
                status VARCHAR,
                error_code VARCHAR,
                patient_count INTEGER,
                submission_score DOUBLE
            )
            """
        )

    def insert_log(self, record: dict) -> None:
        """로그 레코드를 저장

        Args:
            record: 로그 레코드 딕셔너리
        """
        self._conn.execute(
            """
            INSERT INTO logs (timestamp, level, event, run_id, stage, error_code, message, duration_ms, record_count)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                record.get("timestamp"),
                record.get("level"),
                record.get("event"),
                record.get("run_id"),
                record.get("stage"),
                record.get("error_code"),
                record.get("message"),
                record.get("duration_ms"),
                record.get("record_count"),
            ],
        )

    def update_status(self, status: dict) -> None:
        """실행 상태 레코드를 업서트

        Args:
            status: 상태 레코드 딕셔너리
        """
        self._conn.execute(
            """
            DELETE FROM run_status WHERE run_id = ?
            """,
            [status.get("run_id")],
        )
        self._conn.execute(
            """
            INSERT INTO run_status (run_id, started_at, finished_at, status, error_code, patient_count, submission_score)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                status.get("run_id"),
                status.get("started_at"),
                status.get("finished_at"),
                status.get("status"),
                status.get("error_code"),
                status.get("patient_count"),
                status.get("submission_score"),
            ],
        )

    def query_logs(self, where: str, params: list) -> list[tuple]:
        """조건절(WHERE)을 사용해 로그를 조회

        Args:
            where: SQL WHERE 절
            params: 파라미터 목록

        Returns:
            행 목록
        """
        query = "SELECT * FROM logs"
        if where:
            query += f" WHERE {where}"
        return self._conn.execute(query, params).fetchall()

    def query_runs(self, limit: int = 50) -> list[dict]:
        """최근 실행 상태를 조회

        Args:
            limit: 최대 행 수

        Returns:
            상태 딕셔너리 목록
        """
        cursor = self._conn.execute(
            "SELECT * FROM run_status ORDER BY started_at DESC LIMIT ?", [limit]
        )
        columns = [col[0] for col in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]
