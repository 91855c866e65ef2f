import uuid
from types import SimpleNamespace

from sqlalchemy.dialects import postgresql

from app.repository import issue_repo as repo


class ScriptedSession:
    """execute 依次返回预置结果，并记录语句"""

    def __init__(self, *results) -> None:
        self.results = list(results)
        self.statements = []
        self.flushes = 0

    def execute(self, stmt, params=None):
        self.statements.append(stmt)
        return self.results.pop(0)

    def flush(self) -> None:
        self.flushes += 1


def _rows(items):
    return SimpleNamespace(scalars=lambda: SimpleNamespace(all=lambda: items))


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


def test_list_issues_filters_and_paginates():
    issue = SimpleNamespace(id=uuid.uuid4())
    db = ScriptedSession(SimpleNamespace(scalar_one=lambda: 7), _rows([issue]))

    rows, total = repo.list_issues(db, severity="high", channel="google_merchant_center", status="open",
                                   page=2, page_size=5)

    assert (rows, total) == ([issue], 7)
    count_sql, page_sql = (_sql(s) for s in db.statements)
    assert "count(*)" in count_sql
    for sql in (count_sql, page_sql):
        assert "issues.severity = 'HIGH'" in sql
        assert "issues.channel = 'GOOGLE_MERCHANT_CENTER'" in sql
        assert "issues.status = 'OPEN'" in sql
    assert "ORDER BY issues.created_at DESC" in page_sql
    assert "LIMIT 5 OFFSET 5" in page_sql


def test_list_issues_bad_product_id_is_empty():
    db = ScriptedSession()

    assert repo.list_issues(db, product_id="not-a-uuid") == ([], 0)
    assert db.statements == []


def test_open_issues_keyed_by_product_and_type():
    pid = uuid.uuid4()
    issue = SimpleNamespace(product_id=pid, type="MISSING_IMAGE")
    db = ScriptedSession(_rows([issue]))

    got = repo.open_issues_by_key(db, "META_CATALOG")

    assert got == {(str(pid), "MISSING_IMAGE"): issue}
    sql = _sql(db.statements[0])
    assert "issues.channel = 'META_CATALOG'" in sql
    assert "issues.status = 'OPEN'" in sql


def test_resolve_issue_only_stamps_once():
    issue = SimpleNamespace(status="OPEN", resolved_at=None)
    db = ScriptedSession()

    repo.resolve_issue(db, issue)
    stamped = issue.resolved_at
    repo.resolve_issue(db, issue)

    assert issue.status == "RESOLVED"
    assert stamped is not None and issue.resolved_at is stamped
    assert db.flushes == 1
