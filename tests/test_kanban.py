"""
Tests for the kanban board: columns, projects and their references
"""
import pytest

from database.models import Organization
from services.exceptions import NotFoundError, ReferentialIntegrityError, ValidationError
from services.kanban_repository import DEFAULT_COLUMNS, KanbanRepository


@pytest.fixture
def board(db_session, org_id):
    repo = KanbanRepository(db_session, org_id)
    repo.ensure_default_columns()
    return repo


@pytest.fixture
def project(board):
    return board.create_project({
        'title': 'Painel CCM',
        'customer_name': 'Metalúrgica Alfa',
        'value': 15000,
        'due_date': '2024-04-30',
    })


@pytest.mark.unit
class TestColumns:
    """Tests for board columns"""

    def test_default_columns(self, board):
        assert [c['id'] for c in board.list_columns()] == [c['id'] for c in DEFAULT_COLUMNS]

    def test_ensure_default_columns_is_idempotent(self, board):
        board.ensure_default_columns()
        assert len(board.list_columns()) == len(DEFAULT_COLUMNS)

    def test_new_column_goes_last(self, board):
        column = board.create_column({'title': 'Faturado'})
        assert column['position'] == len(DEFAULT_COLUMNS)
        assert board.list_columns()[-1]['id'] == column['id']

    def test_duplicate_id_rejected(self, board):
        with pytest.raises(ValidationError):
            board.create_column({'id': 'testing', 'title': 'Outra'})

    def test_same_ids_in_two_organizations(self, db_session, board):
        other = Organization(name='Outra', slug='outra', settings={})
        db_session.add(other)
        db_session.flush()
        columns = KanbanRepository(db_session, other.id).ensure_default_columns()
        assert columns[0]['id'] == 'waiting_parts'
        assert len(board.list_columns()) == len(DEFAULT_COLUMNS)

    def test_reorder(self, board):
        ids = [c['id'] for c in board.list_columns()][::-1]
        assert [c['id'] for c in board.reorder_columns(ids)] == ids

    def test_reorder_unknown_column(self, board):
        with pytest.raises(NotFoundError):
            board.reorder_columns(['nope'])

    def test_update_column(self, board):
        column = board.update_column('testing', {'title': 'Comissionamento', 'color': '#000000'})
        assert column['title'] == 'Comissionamento'

    def test_delete_empty_column(self, board):
        assert board.delete_column('testing') is True
        assert board.delete_column('testing') is False

    def test_delete_referenced_column_refused(self, board, project):
        with pytest.raises(ReferentialIntegrityError):
            board.delete_column(project['status'])


@pytest.mark.unit
class TestProjects:
    """Tests for projects on the board"""

    def test_default_status_is_first_column(self, project):
        assert project['status'] == 'waiting_parts'
        assert project['priority'] == 'medium'
        assert project['due_date'] == '2024-04-30'

    def test_requires_title_and_customer(self, board):
        with pytest.raises(ValidationError):
            board.create_project({'title': 'Sem cliente'})

    def test_unknown_status_rejected(self, board):
        with pytest.raises(ReferentialIntegrityError):
            board.create_project({'title': 'X', 'customer_name': 'Y', 'status': 'limbo'})

    def test_invalid_priority(self, board):
        with pytest.raises(ValidationError):
            board.create_project({'title': 'X', 'customer_name': 'Y', 'priority': 'urgent'})

    def test_move(self, board, project):
        moved = board.move_project(project['id'], 'installation')
        assert moved['status'] == 'installation'
        with pytest.raises(ReferentialIntegrityError):
            board.move_project(project['id'], 'limbo')

    def test_board_groups_projects(self, board, project):
        columns = {c['id']: c for c in board.get_board()}
        assert [p['id'] for p in columns['waiting_parts']['projects']] == [project['id']]
        assert columns['finished']['projects'] == []

    def test_update(self, board, project):
        updated = board.update_project(project['id'], {'priority': 'high', 'value': '2500.5'})
        assert updated['priority'] == 'high'
        assert updated['value'] == 2500.5

    def test_update_blank_title_rejected(self, board, project):
        with pytest.raises(ValidationError):
            board.update_project(project['id'], {'title': '  '})

    def test_delete(self, board, project):
        assert board.delete_project(project['id']) is True
        assert board.get_project(project['id']) is None
        assert board.delete_column('waiting_parts') is True
