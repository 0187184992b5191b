"""
Easily extendible templates for seed data
- Add new entries to a template list
- Compose them into DEFAULT_DATA_TEMPLATE

References between templates use codes (UMG code, "UMG/SERVICE" service
keys, category and object codes); seed_db resolves them to ids.

    Example: Seed reference data only
        await seed_db(db_manager, {**DEFAULT_DATA_TEMPLATE, "documents": []})
"""

from typing import Any

from pipeline_docs.services.v1 import CAPABILITY_REGISTRY, Action, Module

# Role name -> capabilities; None means every registered capability
ROLE_DATA_TEMPLATE: list[dict[str, Any]] = [
    {
        "name": "Администратор",
        "description": "Полный доступ ко всей системе",
        "capabilities": None,
    },
    {
        "name": "Менеджер документации",
        "description": "Управление документами и объектами",
        "capabilities": [
            *((Module.DOCUMENTS, a) for a in CAPABILITY_REGISTRY[Module.DOCUMENTS]),
            *((Module.OBJECTS, a) for a in CAPABILITY_REGISTRY[Module.OBJECTS]),
            (Module.ORGSTRUCTURE, Action.VIEW),
            (Module.DASHBOARD, Action.VIEW),
        ],
    },
    {
        "name": "Инженер",
        "description": "Просмотр документов и объектов",
        "capabilities": [
            (Module.DOCUMENTS, Action.VIEW),
            (Module.OBJECTS, Action.VIEW),
            (Module.ORGSTRUCTURE, Action.VIEW),
            (Module.DASHBOARD, Action.VIEW),
        ],
    },
]

ADMIN_USER_TEMPLATE: dict[str, Any] = {
    "username": "admin",
    "password": "admin123",
    "full_name": "Системный администратор",
    "email": "admin@upravdoc.ru",
    "role": "Администратор",
}

UMG_DATA_TEMPLATE: list[dict[str, Any]] = [
    {
        "name": "УМГ Север",
        "code": "UMG-NORTH",
        "description": "Северное управление магистральных газопроводов",
    },
    {
        "name": "УМГ Восток",
        "code": "UMG-EAST",
        "description": "Восточное управление магистральных газопроводов",
    },
]

SERVICE_DATA_TEMPLATE: list[dict[str, Any]] = [
    {
        "umg": "UMG-NORTH",
        "name": "Техническая служба",
        "code": "TECH",
        "description": "Служба технического обслуживания",
    },
    {
        "umg": "UMG-NORTH",
        "name": "Эксплуатационная служба",
        "code": "OPER",
        "description": "Служба эксплуатации",
    },
    {
        "umg": "UMG-EAST",
        "name": "Техническая служба",
        "code": "TECH",
        "description": "Служба технического обслуживания",
    },
]

# Listed parents first; "parent" is a department code within the same service
DEPARTMENT_DATA_TEMPLATE: list[dict[str, Any]] = [
    {
        "service": "UMG-NORTH/TECH",
        "name": "Отдел диагностики",
        "code": "DIAG",
        "description": "Диагностика оборудования",
    },
    {
        "service": "UMG-NORTH/TECH",
        "name": "Отдел ремонта",
        "code": "REPAIR",
        "description": "Ремонт оборудования",
    },
    {
        "service": "UMG-NORTH/TECH",
        "parent": "DIAG",
        "name": "Группа КИП",
        "code": "KIP",
        "description": "Контрольно-измерительные приборы",
    },
]

CATEGORY_DATA_TEMPLATE: list[dict[str, Any]] = [
    {"name": "Техническая документация", "code": "TECH", "description": "Техническая документация объектов"},
    {"name": "Чертежи", "code": "DRAWINGS", "description": "Проектные чертежи"},
    {"name": "Протоколы", "code": "PROTOCOLS", "description": "Протоколы испытаний"},
    {"name": "Инструкции", "code": "INSTRUCTIONS", "description": "Инструкции по эксплуатации"},
    {"name": "Паспорта", "code": "PASSPORTS", "description": "Паспорта оборудования"},
]

# First service is the primary one
OBJECT_DATA_TEMPLATE: list[dict[str, Any]] = [
    {
        "code": "OBJ-001",
        "name": "Компрессорная станция КС-1",
        "type": "Компрессорная станция",
        "umg": "UMG-NORTH",
        "location": "Северный регион",
        "description": "Основная компрессорная станция",
        "services": ["UMG-NORTH/TECH", "UMG-NORTH/OPER"],
    },
    {
        "code": "OBJ-002",
        "name": "Газопровод ГП-12",
        "type": "Газопровод",
        "umg": "UMG-EAST",
        "location": "Восточный регион",
        "services": ["UMG-EAST/TECH"],
    },
]

# file_path is relative to the configured upload directory
DOCUMENT_DATA_TEMPLATE: list[dict[str, Any]] = [
    {
        "code": "DOC-001",
        "name": "Техническая документация КС-1.pdf",
        "file_name": "tech_ks1.pdf",
        "file_path": "tech_ks1.pdf",
        "file_size": 2457600,
        "mime_type": "application/pdf",
        "category": "TECH",
        "object": "OBJ-001",
        "umg": "UMG-NORTH",
        "tags": ["техническая", "КС-1"],
        "text_content": "Техническая документация компрессорной станции КС-1",
        "grants": [
            {"service": "UMG-NORTH/TECH", "can_view": True, "can_edit": True, "can_delete": True},
            {"service": "UMG-NORTH/OPER", "can_view": True},
        ],
    },
    {
        "code": "DOC-002",
        "name": "Схема газопровода ГП-12.dwg",
        "file_name": "schema_gp12.dwg",
        "file_path": "schema_gp12.dwg",
        "file_size": 5349376,
        "mime_type": "application/acad",
        "category": "DRAWINGS",
        "object": "OBJ-002",
        "umg": "UMG-EAST",
        "tags": ["чертежи", "ГП-12"],
        "grants": [],
    },
    {
        "code": "DOC-003",
        "name": "Протокол испытаний.docx",
        "file_name": "protocol.docx",
        "file_path": "protocol.docx",
        "file_size": 876544,
        "mime_type": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "category": "PROTOCOLS",
        "umg": "UMG-NORTH",
        "tags": ["протокол", "испытания"],
        "grants": [],
    },
]

# Combined default template
DEFAULT_DATA_TEMPLATE: dict[str, Any] = {
    "roles": ROLE_DATA_TEMPLATE,
    "admin": ADMIN_USER_TEMPLATE,
    "umg": UMG_DATA_TEMPLATE,
    "services": SERVICE_DATA_TEMPLATE,
    "departments": DEPARTMENT_DATA_TEMPLATE,
    "categories": CATEGORY_DATA_TEMPLATE,
    "objects": OBJECT_DATA_TEMPLATE,
    "documents": DOCUMENT_DATA_TEMPLATE,
}

__all__ = [
    "DEFAULT_DATA_TEMPLATE",
    "ROLE_DATA_TEMPLATE",
    "ADMIN_USER_TEMPLATE",
    "UMG_DATA_TEMPLATE",
    "SERVICE_DATA_TEMPLATE",
    "DEPARTMENT_DATA_TEMPLATE",
    "CATEGORY_DATA_TEMPLATE",
    "OBJECT_DATA_TEMPLATE",
    "DOCUMENT_DATA_TEMPLATE",
]
