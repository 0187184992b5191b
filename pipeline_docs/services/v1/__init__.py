# pipeline_docs/services/v1/__init__.py
from .capabilities import *
from .permission_resolver import *
from .access_query_service import *
from .document_search_service import *
from .audit_service import *
from .department_tree import *
from .user_service import *
from .role_service import *
from .org_structure_service import *
from .pipeline_object_service import *
from .document_service import *
