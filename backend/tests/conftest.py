import os, sys, pytest
# Ensure the backend directory is on path so 'bakery' and 'tests' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from bakery import create_app, get_db
from bakery.models.authz import Base
from bakery.services.grants import CACHE_EXTENSION_KEY
import bakery.models.audit  # noqa: F401  register audit_logs before create_all


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    app = create_app({'TESTING': True, 'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-for-hs256'})
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture(autouse=True)
def clean_state(app_instance):
    yield
    session = get_db()
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    # ids are reused by sqlite once rows are gone
    session.expunge_all()
    app_instance.extensions[CACHE_EXTENSION_KEY].clear()


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()
