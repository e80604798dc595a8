import logging
import time, uuid, datetime as dt
from typing import Optional
from .db import get_conn

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "info"):
    """按 LOG_LEVEL 配置根 logger；未知级别退回 INFO。"""
    lvl = getattr(logging, (level or "info").upper(), None)
    if not isinstance(lvl, int):
        lvl = logging.INFO
    logging.basicConfig(level=lvl, format=LOG_FORMAT)
    logging.getLogger().setLevel(lvl)


class RequestLogContext:
    """一次 HTTP 请求的访问记录，write() 时落库到 request_log。"""

    def __init__(self, method: str, path: str, request_id: Optional[str] = None):
        self.method = method
        self.path = path
        self.request_id = request_id or str(uuid.uuid4())
        self.start = time.perf_counter()
        self.query = None
        self.client_ip = None
        self.user_agent = None

    def set_client(self, ip: Optional[str], user_agent: Optional[str]):
        self.client_ip = ip
        self.user_agent = user_agent

    def set_query(self, q: Optional[str]): self.query = q or None

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.start) * 1000)

    def write(self, status: int, err: Optional[str] = None, db_path: Optional[str] = None):
        rec = {
            "ts": dt.datetime.now(dt.timezone.utc).isoformat(),
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "query": self.query,
            "status": status,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
            "err_msg": err,
            "latency_ms": self.elapsed_ms(),
        }
        with get_conn(db_path) as conn:
            conn.execute(
                """INSERT INTO request_log
                (ts,request_id,method,path,query,status,client_ip,user_agent,err_msg,latency_ms)
                VALUES(:ts,:request_id,:method,:path,:query,:status,:client_ip,:user_agent,:err_msg,:latency_ms)""",
                rec
            )
            conn.commit()
        return rec


def search_logs(path: str | None, status: int | None, ts_from: str | None, ts_to: str | None, page: int, size: int):
    where = []
    params = {}
    if path:
        where.append("path LIKE :path")
        params["path"] = f"%{path}%"
    if status is not None:
        where.append("status = :status")
        params["status"] = status
    if ts_from:
        where.append("ts >= :from")
        params["from"] = ts_from
    if ts_to:
        where.append("ts <= :to")
        params["to"] = ts_to
    wh = " WHERE " + " AND ".join(where) if where else ""
    sql = f"SELECT * FROM request_log{wh} ORDER BY id DESC LIMIT :limit OFFSET :offset"
    count_sql = f"SELECT COUNT(1) AS cnt FROM request_log{wh}"
    with get_conn() as conn:
        total = conn.execute(count_sql, params).fetchone()["cnt"]
        rows = conn.execute(sql, {**params, "limit": size, "offset": (page-1)*size}).fetchall()
        return total, [dict(r) for r in rows]
