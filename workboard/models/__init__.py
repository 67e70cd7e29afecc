# Models package — import all models here so Alembic can discover them.

from workboard.models.user import User  # noqa: F401
from workboard.models.project import (  # noqa: F401
    Project,
    ProjectMember,
    ProjectSequence,
)
from workboard.models.board import (  # noqa: F401
    Board,
    Workflow,
    WorkflowStatus,
    WorkflowTransition,
)
from workboard.models.sprint import Sprint  # noqa: F401
from workboard.models.tarefa import Tarefa, TarefaActivity, TarefaComment  # noqa: F401
from workboard.models.audit import AuditEvent  # noqa: F401
