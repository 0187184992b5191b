import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

SECRET_KEY = os.getenv("SECRET_KEY", "ci-test-secret")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS512")

_RUNTIME_DIR = Path(tempfile.mkdtemp(prefix="pipeline-docs-tests-"))
UPLOAD_DIR = _RUNTIME_DIR / "uploads"
UPLOAD_DIR.mkdir()

# The app and the tests must agree on secret/algorithm; no DB_HOST, the
# database manager is injected per test
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("APP_TITLE", "Pipeline Docs (tests)")
os.environ.setdefault("APP_VERSION", "1.0.0")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ["LOG_DIR"] = str(_RUNTIME_DIR / "logs")
os.environ["UPLOAD_DIR"] = str(UPLOAD_DIR)
os.environ.setdefault("SECRET_KEY", SECRET_KEY)
os.environ.setdefault("JWT_ALGORITHM", ALGORITHM)
os.environ.pop("DB_HOST", None)

from main import app  # noqa: E402
from common.security import get_password_hash  # noqa: E402
from pipeline_docs.db import DbManager  # noqa: E402
from pipeline_docs.db.models import (  # noqa: E402
    DbBaseModel,
    Document,
    DocumentCategory,
    DocumentService,
    ObjectService,
    Permission,
    PipelineObject,
    Role,
    RolePermission,
    Service,
    Umg,
    User,
    UserRole,
    UserServiceAccess,
    UserStatus,
    UserUmgAccess,
)
from pipeline_docs.services.v1 import Action, Module, all_capabilities  # noqa: E402

PASSWORD = "secret123"


def make_auth_headers(user_id: str, expires_in: timedelta = timedelta(hours=1)) -> dict:
    """JWT bearer header for `user_id`, signed the way the app expects."""
    exp = datetime.now(timezone.utc) + expires_in
    payload = {"sub": user_id, "exp": int(exp.timestamp())}
    token = jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@dataclass
class World:
    """Ids of the seeded fixture data."""

    admin_id: str = ""
    engineer_id: str = ""
    outsider_id: str = ""
    inactive_id: str = ""
    admin_role_id: str = ""
    engineer_role_id: str = ""
    custom_role_id: str = ""
    umg_north_id: str = ""
    umg_east_id: str = ""
    north_tech_id: str = ""
    north_oper_id: str = ""
    east_tech_id: str = ""
    category_id: str = ""
    object_id: str = ""
    permission_ids: dict[tuple[str, str], str] = field(default_factory=dict)
    # name -> id
    documents: dict[str, str] = field(default_factory=dict)


def _add(session: Session, obj):
    session.add(obj)
    session.flush()
    return obj


def build_world(session: Session) -> World:
    """
    Two UMGs, three services, an admin with every capability, an engineer
    who sees north/TECH only, a user with no roles and an inactive user.

    Documents (granting services in brackets):
      pump-manual      [north TECH view+edit, north OPER view]
      valve-passport   [north OPER view]
      east-drawing     [east TECH view]
      hidden-report    [north TECH, can_view false]
    """
    w = World()

    for module, action in all_capabilities():
        permission = _add(session, Permission(module=module.value, action=action.value))
        w.permission_ids[(module.value, action.value)] = permission.permission_id

    admin_role = _add(session, Role(name="Administrator", is_system=True))
    engineer_role = _add(session, Role(name="Engineer", is_system=True))
    custom_role = _add(session, Role(name="Auditor", is_system=False))
    w.admin_role_id = admin_role.role_id
    w.engineer_role_id = engineer_role.role_id
    w.custom_role_id = custom_role.role_id

    for permission_id in w.permission_ids.values():
        session.add(RolePermission(role_id=admin_role.role_id, permission_id=permission_id))
    for capability in (
        (Module.DOCUMENTS, Action.VIEW),
        (Module.OBJECTS, Action.VIEW),
    ):
        session.add(
            RolePermission(
                role_id=engineer_role.role_id,
                permission_id=w.permission_ids[(capability[0].value, capability[1].value)],
            )
        )
    session.add(
        RolePermission(
            role_id=custom_role.role_id,
            permission_id=w.permission_ids[(Module.AUDIT.value, Action.VIEW.value)],
        )
    )

    password_hash = get_password_hash(PASSWORD)
    admin = _add(session, User(username="admin", full_name="System Admin", password_hash=password_hash))
    engineer = _add(session, User(username="engineer", full_name="Field Engineer", password_hash=password_hash))
    outsider = _add(session, User(username="outsider", full_name="No Roles", password_hash=password_hash))
    inactive = _add(
        session,
        User(username="inactive", full_name="Gone", password_hash=password_hash, status=UserStatus.INACTIVE),
    )
    w.admin_id, w.engineer_id = admin.user_id, engineer.user_id
    w.outsider_id, w.inactive_id = outsider.user_id, inactive.user_id

    session.add(UserRole(user_id=admin.user_id, role_id=admin_role.role_id))
    session.add(UserRole(user_id=engineer.user_id, role_id=engineer_role.role_id))
    session.add(UserRole(user_id=inactive.user_id, role_id=admin_role.role_id))

    north = _add(session, Umg(name="North", code="UMG-NORTH"))
    east = _add(session, Umg(name="East", code="UMG-EAST"))
    w.umg_north_id, w.umg_east_id = north.umg_id, east.umg_id

    north_tech = _add(session, Service(umg_id=north.umg_id, name="North Tech", code="TECH"))
    north_oper = _add(session, Service(umg_id=north.umg_id, name="North Oper", code="OPER"))
    east_tech = _add(session, Service(umg_id=east.umg_id, name="East Tech", code="TECH"))
    w.north_tech_id = north_tech.service_id
    w.north_oper_id = north_oper.service_id
    w.east_tech_id = east_tech.service_id

    # Admin sees every service, engineer only north TECH
    for service_id in (w.north_tech_id, w.north_oper_id, w.east_tech_id):
        session.add(UserServiceAccess(user_id=admin.user_id, service_id=service_id))
    session.add(UserServiceAccess(user_id=engineer.user_id, service_id=w.north_tech_id))
    session.add(UserUmgAccess(user_id=engineer.user_id, umg_id=w.umg_east_id))

    category = _add(session, DocumentCategory(name="Manuals", code="MANUALS"))
    w.category_id = category.category_id

    station = _add(
        session,
        PipelineObject(code="OBJ-001", name="Compressor station", type="station", umg_id=north.umg_id),
    )
    w.object_id = station.object_id
    session.add(ObjectService(object_id=station.object_id, service_id=w.north_tech_id, is_primary=True))

    def document(name: str, umg_id: str, tags: list[str], text: str, object_id=None) -> Document:
        doc = _add(
            session,
            Document(
                name=name,
                file_name=f"{name}.pdf",
                file_path=f"{name}.pdf",
                file_size=10,
                mime_type="application/pdf",
                category_id=w.category_id,
                object_id=object_id,
                umg_id=umg_id,
                tags=tags,
                text_content=text,
                uploaded_by=admin.user_id,
            ),
        )
        w.documents[name] = doc.document_id
        return doc

    pump = document("pump-manual", north.umg_id, ["pump", "manual"], "Pump maintenance", station.object_id)
    valve = document("valve-passport", north.umg_id, ["valve"], "Valve passport")
    drawing = document("east-drawing", east.umg_id, ["drawing"], "Pipeline drawing")
    hidden = document("hidden-report", north.umg_id, ["pump"], "Pump incident report")

    session.add_all(
        [
            DocumentService(document_id=pump.document_id, service_id=w.north_tech_id, can_view=True, can_edit=True),
            DocumentService(document_id=pump.document_id, service_id=w.north_oper_id, can_view=True),
            DocumentService(document_id=valve.document_id, service_id=w.north_oper_id, can_view=True),
            DocumentService(document_id=drawing.document_id, service_id=w.east_tech_id, can_view=True),
            DocumentService(document_id=hidden.document_id, service_id=w.north_tech_id, can_view=False),
        ]
    )
    session.flush()
    return w


# ============================================
# Database fixtures
# ============================================


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def sync_engine(db_path):
    engine = create_engine(f"sqlite:///{db_path}")
    DbBaseModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def world(sync_engine) -> World:
    with Session(sync_engine) as session:
        seeded = build_world(session)
        session.commit()
    return seeded


@pytest.fixture
async def db_manager(sync_engine, db_path):
    manager = DbManager(f"sqlite+aiosqlite:///{db_path}")
    yield manager
    await manager.dispose()


@pytest.fixture
async def db(db_manager):
    async with db_manager.session() as session:
        yield session


# ============================================
# HTTP fixtures
# ============================================


@pytest.fixture
def client(sync_engine, db_path):
    manager = DbManager(f"sqlite+aiosqlite:///{db_path}")
    app.state.db_manager = manager
    with TestClient(app) as test_client:
        yield test_client
        test_client.portal.call(manager.dispose)
    app.state.db_manager = None


@pytest.fixture
def upload_dir() -> Path:
    return UPLOAD_DIR
