"""
Kanban Repository - Database operations for board columns and projects.
"""

import logging
from typing import List, Dict, Optional
from datetime import datetime
from sqlalchemy import func
from sqlalchemy.orm import Session

from database.models import KanbanColumn, Project
from services.exceptions import NotFoundError, ReferentialIntegrityError, ValidationError
from validators import parse_date, require_fields

logger = logging.getLogger(__name__)

PRIORITIES = ('low', 'medium', 'high')

DEFAULT_COLUMNS = [
    {'id': 'waiting_parts', 'title': 'Aguardando Peças', 'color': '#fef9c3'},
    {'id': 'bench_assembly', 'title': 'Montagem em Bancada', 'color': '#dbeafe'},
    {'id': 'installation', 'title': 'Instalação no Cliente', 'color': '#e0e7ff'},
    {'id': 'testing', 'title': 'Testes/Comissionamento', 'color': '#f3e8ff'},
    {'id': 'finished', 'title': 'Finalizado', 'color': '#dcfce7'},
]


class KanbanRepository:
    """Repository for kanban columns and the projects placed on them."""

    def __init__(self, session: Session, organization_id: str):
        self.session = session
        self.organization_id = organization_id

    # =========================================================================
    # COLUMNS
    # =========================================================================

    def _columns(self):
        return self.session.query(KanbanColumn).filter(
            KanbanColumn.organization_id == self.organization_id
        )

    def _get_column(self, column_id: str) -> Optional[KanbanColumn]:
        return self._columns().filter(KanbanColumn.id == column_id).first()

    def list_columns(self) -> List[Dict]:
        """List board columns by position."""
        columns = self._columns().order_by(KanbanColumn.position, KanbanColumn.created_at).all()
        return [c.to_dict() for c in columns]

    def create_column(self, data: Dict) -> Dict:
        """Create a column at the end of the board unless a position is given."""
        require_fields(data, ['title'])
        if data.get('id') and self._get_column(data['id']):
            raise ValidationError(f"Coluna já existe: {data['id']}", field='id')

        position = data.get('position')
        if position is None:
            last = self._columns().with_entities(func.max(KanbanColumn.position)).scalar()
            position = (last + 1) if last is not None else 0

        column = KanbanColumn(
            organization_id=self.organization_id,
            title=data['title'].strip(),
            position=int(position),
            color=data.get('color') or '#e2e8f0',
        )
        if data.get('id'):
            column.id = data['id']

        self.session.add(column)
        self.session.flush()
        logger.info(f"Created kanban column: {column.id}")
        return column.to_dict()

    def update_column(self, column_id: str, data: Dict) -> Dict:
        column = self._get_column(column_id)
        if not column:
            raise NotFoundError('KanbanColumn', column_id)
        if 'title' in data:
            require_fields(data, ['title'])
            column.title = data['title'].strip()
        if 'color' in data:
            column.color = data['color']
        if 'position' in data:
            column.position = int(data['position'])
        self.session.flush()
        return column.to_dict()

    def reorder_columns(self, column_ids: List[str]) -> List[Dict]:
        """Assign positions following the given id order."""
        columns = {c.id: c for c in self._columns().all()}
        for position, column_id in enumerate(column_ids):
            if column_id not in columns:
                raise NotFoundError('KanbanColumn', column_id)
            columns[column_id].position = position
        self.session.flush()
        return self.list_columns()

    def delete_column(self, column_id: str) -> bool:
        """Delete a column. Refused while any project still sits in it."""
        column = self._get_column(column_id)
        if not column:
            return False

        in_use = self._projects().filter(Project.status == column_id).count()
        if in_use:
            raise ReferentialIntegrityError(
                f"Coluna possui {in_use} projeto(s); mova-os antes de excluir",
                field='status'
            )

        self.session.delete(column)
        self.session.flush()
        logger.info(f"Deleted kanban column: {column_id}")
        return True

    def ensure_default_columns(self) -> List[Dict]:
        """Create the default board for an organization that has no columns."""
        if self._columns().count() == 0:
            for position, column in enumerate(DEFAULT_COLUMNS):
                self.create_column(dict(column, position=position))
        return self.list_columns()

    # =========================================================================
    # PROJECTS
    # =========================================================================

    def _projects(self):
        return self.session.query(Project).filter(
            Project.organization_id == self.organization_id
        )

    def _get_project(self, project_id: str) -> Project:
        project = self._projects().filter(Project.id == project_id).first()
        if not project:
            raise NotFoundError('Project', project_id)
        return project

    def _check_status(self, status: str):
        if not status or not self._get_column(status):
            raise ReferentialIntegrityError(
                f"Coluna inexistente: {status}", field='status'
            )

    @staticmethod
    def _check_priority(priority: str):
        if priority not in PRIORITIES:
            raise ValidationError(f"Prioridade inválida: {priority}", field='priority')

    @staticmethod
    def _value(value) -> float:
        try:
            return float(value or 0)
        except (TypeError, ValueError):
            raise ValidationError("Valor inválido", field='value')

    def list_projects(self, status: str = None) -> List[Dict]:
        """List projects, optionally for one column, newest first."""
        query = self._projects()
        if status:
            query = query.filter(Project.status == status)
        projects = query.order_by(Project.created_at.desc()).all()
        return [p.to_dict() for p in projects]

    def get_board(self) -> List[Dict]:
        """Columns by position, each with its projects."""
        projects = self.list_projects()
        board = []
        for column in self.list_columns():
            column['projects'] = [p for p in projects if p['status'] == column['id']]
            board.append(column)
        return board

    def get_project(self, project_id: str) -> Optional[Dict]:
        project = self._projects().filter(Project.id == project_id).first()
        return project.to_dict() if project else None

    def create_project(self, data: Dict) -> Dict:
        """Create a project. Title and customer are required; status must be a column id."""
        require_fields(data, ['title', 'customer_name'])
        status = data.get('status')
        if not status:
            first = self._columns().order_by(KanbanColumn.position).first()
            status = first.id if first else None
        self._check_status(status)
        priority = data.get('priority') or 'medium'
        self._check_priority(priority)

        project = Project(
            organization_id=self.organization_id,
            title=data['title'].strip(),
            description=data.get('description'),
            customer_name=data['customer_name'].strip(),
            status=status,
            priority=priority,
            due_date=parse_date(data.get('due_date'), required=False, field='due_date'),
            value=self._value(data.get('value')),
        )
        self.session.add(project)
        self.session.flush()
        logger.info(f"Created project: {project.id} in {status}")
        return project.to_dict()

    def update_project(self, project_id: str, data: Dict) -> Dict:
        project = self._get_project(project_id)

        if 'title' in data or 'customer_name' in data:
            require_fields(data, [k for k in ('title', 'customer_name') if k in data])
        if 'title' in data:
            project.title = data['title'].strip()
        if 'customer_name' in data:
            project.customer_name = data['customer_name'].strip()
        if 'description' in data:
            project.description = data['description']
        if 'status' in data:
            self._check_status(data['status'])
            project.status = data['status']
        if 'priority' in data:
            self._check_priority(data['priority'])
            project.priority = data['priority']
        if 'due_date' in data:
            project.due_date = parse_date(data['due_date'], required=False, field='due_date')
        if 'value' in data:
            project.value = self._value(data['value'])

        project.updated_at = datetime.utcnow()
        self.session.flush()
        return project.to_dict()

    def move_project(self, project_id: str, column_id: str) -> Dict:
        """Move a project to another column."""
        project = self._get_project(project_id)
        self._check_status(column_id)
        if project.status != column_id:
            logger.info(f"Project {project_id} moved {project.status} -> {column_id}")
            project.status = column_id
            project.updated_at = datetime.utcnow()
            self.session.flush()
        return project.to_dict()

    def delete_project(self, project_id: str) -> bool:
        project = self._projects().filter(Project.id == project_id).first()
        if not project:
            return False
        self.session.delete(project)
        self.session.flush()
        logger.info(f"Deleted project: {project_id}")
        return True
