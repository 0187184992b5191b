# pipeline_docs/api/v1/__init__.py
from .auth_router import *
from .user_router import *
from .role_router import *
from .org_structure_router import *
from .object_router import *
from .document_router import *
from .search_router import *
from .my_router import *
from .audit_router import *

v1_routers = [
    auth_router,
    user_router,
    role_router,
    org_structure_router,
    object_router,
    document_router,
    search_router,
    my_router,
    audit_router,
]
