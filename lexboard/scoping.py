"""
Role-Scoped Query Filter
========================

Visibility policy per resource type:

    resource        paralegal       advocate
    case/client/task everything     own records only
    report          own jobs only   own jobs only

`scope_predicate` is pure: it returns a SQLAlchemy boolean clause and never
touches the session. The same predicate narrows list, read, update and
delete, so an out-of-scope row simply looks missing (404, never 403).
"""

import enum

from sqlalchemy import true

from .auth import AuthContext
from .db.models import Case, Client, Task, ReportJob


class ResourceType(str, enum.Enum):
    CASE = "case"
    CLIENT = "client"
    TASK = "task"
    REPORT = "report"


MODEL_FOR_RESOURCE = {
    ResourceType.CASE: Case,
    ResourceType.CLIENT: Client,
    ResourceType.TASK: Task,
    ResourceType.REPORT: ReportJob,
}

# Resource types a paralegal may see and edit regardless of owner
PARALEGAL_SHARED = frozenset({ResourceType.CASE, ResourceType.CLIENT, ResourceType.TASK})


def owner_column(resource_type: ResourceType):
    if resource_type == ResourceType.REPORT:
        return ReportJob.user_id
    return MODEL_FOR_RESOURCE[resource_type].created_by_user_id


def scope_predicate(resource_type: ResourceType, auth: AuthContext):
    """Visibility clause for `resource_type` as seen by `auth`."""
    resource_type = ResourceType(resource_type)
    if auth.is_paralegal and resource_type in PARALEGAL_SHARED:
        return true()
    return owner_column(resource_type) == auth.user_id


def scoped_query(db, resource_type: ResourceType, auth: AuthContext):
    model = MODEL_FOR_RESOURCE[ResourceType(resource_type)]
    return db.query(model).filter(scope_predicate(resource_type, auth))


def get_scoped(db, resource_type: ResourceType, auth: AuthContext, record_id: str):
    """Fetch one record if it exists and is visible to the caller, else None."""
    model = MODEL_FOR_RESOURCE[ResourceType(resource_type)]
    return scoped_query(db, resource_type, auth).filter(model.id == record_id).first()
