"""
Kanban Board Routes Blueprint

Handles the project board:
- /api/kanban/board: Columns with their projects
- /api/kanban/columns, /api/kanban/columns/<column_id>, /api/kanban/columns/order
- /api/kanban/projects, /api/kanban/projects/<project_id>
- /api/kanban/projects/<project_id>/move
"""

from flask import Blueprint, request, jsonify
import logging

from auth import login_required
from app.utils.helpers import current_organization_id, get_json_body
from database.connection import get_db_session
from services.exceptions import NotFoundError, ValidationError
from services.kanban_repository import KanbanRepository

logger = logging.getLogger(__name__)

# Create blueprint
kanban_bp = Blueprint('kanban_bp', __name__)


@kanban_bp.route('/api/kanban/board', methods=['GET'])
@login_required
def get_board():
    with get_db_session() as session:
        board = KanbanRepository(session, current_organization_id()).get_board()
    return jsonify({'success': True, 'columns': board})


# ============================================================================
# COLUMNS
# ============================================================================

@kanban_bp.route('/api/kanban/columns', methods=['GET', 'POST'])
@login_required
def handle_columns():
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = KanbanRepository(session, org_id)
        if request.method == 'GET':
            return jsonify({'success': True, 'columns': repo.list_columns()})
        column = repo.create_column(get_json_body())
    return jsonify({'success': True, 'column': column}), 201


@kanban_bp.route('/api/kanban/columns/order', methods=['PUT'])
@login_required
def reorder_columns():
    column_ids = get_json_body().get('column_ids')
    if not isinstance(column_ids, list):
        raise ValidationError("Informe a lista de colunas", field='column_ids')
    with get_db_session() as session:
        columns = KanbanRepository(session, current_organization_id()).reorder_columns(column_ids)
    return jsonify({'success': True, 'columns': columns})


@kanban_bp.route('/api/kanban/columns/<column_id>', methods=['PUT', 'DELETE'])
@login_required
def handle_column(column_id):
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = KanbanRepository(session, org_id)
        if request.method == 'PUT':
            column = repo.update_column(column_id, get_json_body())
            return jsonify({'success': True, 'column': column})
        if not repo.delete_column(column_id):
            raise NotFoundError('KanbanColumn', column_id)
    return jsonify({'success': True})


# ============================================================================
# PROJECTS
# ============================================================================

@kanban_bp.route('/api/kanban/projects', methods=['GET', 'POST'])
@login_required
def handle_projects():
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = KanbanRepository(session, org_id)
        if request.method == 'GET':
            projects = repo.list_projects(status=request.args.get('status'))
            return jsonify({'success': True, 'projects': projects})
        project = repo.create_project(get_json_body())
    return jsonify({'success': True, 'project': project}), 201


@kanban_bp.route('/api/kanban/projects/<project_id>', methods=['GET', 'PUT', 'DELETE'])
@login_required
def handle_project(project_id):
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = KanbanRepository(session, org_id)
        if request.method == 'GET':
            project = repo.get_project(project_id)
            if not project:
                raise NotFoundError('Project', project_id)
        elif request.method == 'PUT':
            project = repo.update_project(project_id, get_json_body())
        else:
            if not repo.delete_project(project_id):
                raise NotFoundError('Project', project_id)
            return jsonify({'success': True})
    return jsonify({'success': True, 'project': project})


@kanban_bp.route('/api/kanban/projects/<project_id>/move', methods=['POST'])
@login_required
def move_project(project_id):
    """Drop a project into another column"""
    data = get_json_body()
    with get_db_session() as session:
        project = KanbanRepository(session, current_organization_id()).move_project(
            project_id, data.get('status') or data.get('column_id')
        )
    return jsonify({'success': True, 'project': project})
