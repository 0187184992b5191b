# pipeline_docs/db/schemas/__init__.py
from .role_schemas import *
from .user_schemas import *
from .auth_schemas import *
from .org_structure_schemas import *
from .object_schemas import *
from .document_schemas import *
from .search_schemas import *
from .audit_schemas import *
