# pipeline_docs/db/models/__init__.py
from .db_base_model import *
from .enums import *
from .user_table import *
from .role_table import *
from .user_role_table import *
from .org_structure_tables import *
from .access_grant_tables import *
from .pipeline_object_table import *
from .document_table import *
from .document_version_table import *
from .audit_log_table import *
