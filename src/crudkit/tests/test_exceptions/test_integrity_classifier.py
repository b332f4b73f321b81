"""
Classification of driver exceptions by their structured codes.

The fake `orig` objects below carry only the attributes each driver exposes;
none of them has a meaningful message, so these tests also guard against any
fallback to message parsing.
"""
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from crudkit.exceptions.integrity_classifier import ConstraintKind, classify_integrity_error


def _integrity_error(orig) -> IntegrityError:
    return IntegrityError("INSERT INTO users ...", {}, orig)


class FakeAsyncpgCause(Exception):
    def __init__(self, constraint_name):
        super().__init__("")
        self.constraint_name = constraint_name
        self.column_name = None


class FakeAsyncpgAdapterError(Exception):
    sqlstate = "23505"


@pytest.mark.parametrize(
    "pgcode, kind",
    [
        ("23505", ConstraintKind.UNIQUE),
        ("23502", ConstraintKind.NOT_NULL),
        ("23503", ConstraintKind.FOREIGN_KEY),
        ("23514", ConstraintKind.CHECK),
        ("23P01", ConstraintKind.UNKNOWN),
    ],
)
def test_postgres_pgcode(pgcode, kind):
    orig = SimpleNamespace(pgcode=pgcode, diag=SimpleNamespace(constraint_name="ix_users_email", column_name=None))

    diagnostic = classify_integrity_error(_integrity_error(orig))

    assert diagnostic.kind is kind
    assert diagnostic.engine == "postgresql"
    assert diagnostic.constraint == "ix_users_email"


def test_psycopg3_sqlstate_and_column():
    orig = SimpleNamespace(sqlstate="23502", diag=SimpleNamespace(constraint_name=None, column_name="email"))

    diagnostic = classify_integrity_error(_integrity_error(orig))

    assert diagnostic.kind is ConstraintKind.NOT_NULL
    assert diagnostic.column == "email"


def test_asyncpg_constraint_from_chained_cause():
    orig = FakeAsyncpgAdapterError()
    orig.__cause__ = FakeAsyncpgCause("ix_users_email")

    diagnostic = classify_integrity_error(_integrity_error(orig))

    assert diagnostic.kind is ConstraintKind.UNIQUE
    assert diagnostic.constraint == "ix_users_email"


@pytest.mark.parametrize(
    "errno, kind",
    [
        (1062, ConstraintKind.UNIQUE),
        (1048, ConstraintKind.NOT_NULL),
        (1452, ConstraintKind.FOREIGN_KEY),
        (3819, ConstraintKind.CHECK),
        (1205, ConstraintKind.UNKNOWN),
    ],
)
def test_mysql_errno(errno, kind):
    orig = Exception(errno, "")

    diagnostic = classify_integrity_error(_integrity_error(orig))

    assert diagnostic.kind is kind
    assert diagnostic.engine == "mysql"
    assert diagnostic.constraint is None


@pytest.mark.parametrize(
    "code, kind",
    [
        (2067, ConstraintKind.UNIQUE),
        (1555, ConstraintKind.UNIQUE),
        (1299, ConstraintKind.NOT_NULL),
        (787, ConstraintKind.FOREIGN_KEY),
        (275, ConstraintKind.CHECK),
        (19, ConstraintKind.UNKNOWN),
    ],
)
def test_sqlite_extended_errorcode(code, kind):
    orig = SimpleNamespace(sqlite_errorcode=code, sqlite_errorname="SQLITE_CONSTRAINT", args=("",))

    diagnostic = classify_integrity_error(_integrity_error(orig))

    assert diagnostic.kind is kind
    assert diagnostic.engine == "sqlite"


def test_message_text_is_ignored():
    orig = Exception("duplicate key value violates unique constraint \"ix_users_email\"")

    diagnostic = classify_integrity_error(_integrity_error(orig))

    assert diagnostic.kind is ConstraintKind.UNKNOWN
    assert diagnostic.constraint is None
