"""Shared pytest fixtures for kakeibo tests."""

import tempfile
import os
from pathlib import Path
import pytest

from kakeibo.database.factories import create_sqlite_database
from kakeibo.domain.account import AccountService
from kakeibo.domain.category import CategoryService
from kakeibo.domain.classification import ClassificationRuleEngine
from kakeibo.domain.transaction import TransactionService
from kakeibo.importing.commit import CommitCoordinator
from kakeibo.importing.session import ImportSession


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db)


@pytest.fixture
def rule_engine(temp_db):
    """Create a ClassificationRuleEngine with a temporary database."""
    return ClassificationRuleEngine(temp_db)


@pytest.fixture
def sample_account(account_service):
    """Create a sample account for testing."""
    account_id = account_service.create_account(name="Amazonカード", bank_name="三井住友カード")
    return account_service.get_account(account_id)


@pytest.fixture
def sample_categories(category_service):
    """Create the default category tree and return category IDs by name."""
    from kakeibo.cli.commands.init_categories import INITIAL_CATEGORIES

    category_ids = {}

    # Create root categories first
    for category_name, parent_name, kind in INITIAL_CATEGORIES:
        if parent_name is None:
            category_ids[category_name] = category_service.create_category(
                name=category_name, kind=kind
            )

    # Create child categories
    for category_name, parent_name, kind in INITIAL_CATEGORIES:
        if parent_name is not None:
            category_ids[category_name] = category_service.create_category(
                name=category_name, parent_path=parent_name, kind=kind
            )

    return category_ids


@pytest.fixture
def default_rules(rule_engine, sample_categories):
    """Install the default keyword rules over the default categories."""
    rule_engine.bootstrap()
    return rule_engine


@pytest.fixture
def card_rules(default_rules, sample_categories):
    """Default rules plus the two merchants of the card fixture they miss."""
    default_rules.add_rule("大阪第一交通", sample_categories["タクシー"])
    default_rules.add_rule("AVALON", sample_categories["サブスク・デジタル"])
    return default_rules


@pytest.fixture
def coordinator(temp_db):
    """Create a CommitCoordinator with a temporary database."""
    return CommitCoordinator(temp_db)


@pytest.fixture
def make_session(temp_db, rule_engine, fixtures_dir):
    """Return a factory loading a fixture file into a fresh import session."""

    def _make(file_name, encoding=None, **options):
        session = ImportSession(temp_db, engine=rule_engine, **options)
        data = (fixtures_dir / file_name).read_bytes()
        if encoding is not None:
            data = data.decode("utf-8").encode(encoding)
        session.load_file(data, file_name)
        return session

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
