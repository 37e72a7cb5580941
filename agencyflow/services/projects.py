"""Project service: creation, archival and the project-level rosters."""

import logging
from typing import List, Optional
from uuid import UUID

from agencyflow.core.approval import refresh_review_status
from agencyflow.core.audit import snapshot
from agencyflow.core.errors import InvalidStateError, NotFoundError, ValidationError
from agencyflow.db.models import Project, ProjectApprover, ProjectUser
from .base import ScopedService, clean_name, require_active_member

logger = logging.getLogger(__name__)


class ProjectService(ScopedService):

    def get_project(self, project_id: UUID) -> Project:
        project, _ = self.gate.authorize_project(project_id, "projects:read")
        return project

    def create_project(self, client_id: UUID, *, name: str, description: Optional[str] = None) -> Project:
        client, grant = self.gate.authorize_client(client_id, "projects:create")
        if not client.is_active:
            raise ValidationError("Client is inactive", field="client_id")

        project = Project(
            client_id=client.id,
            name=clean_name(name),
            description=description,
            created_by=self.caller.user_id,
        )
        self.db.add(project)
        self.db.flush()

        self.activity.log(grant.agency_id, "project", project.id, "project.created", after=snapshot(project))
        return project

    def archive_project(self, project_id: UUID) -> Project:
        """Archive a project. Archival is terminal."""
        project, grant = self.gate.authorize_project(project_id, "projects:manage")
        self._require_open(project, "archive")

        before = snapshot(project)
        project.is_archived = True
        self.db.flush()

        logger.info("project %s archived", project.id)
        self.activity.log(
            grant.agency_id, "project", project.id, "project.archived",
            before=before, after=snapshot(project),
        )
        return project

    # Approvers

    def list_project_approvers(self, project_id: UUID) -> List[ProjectApprover]:
        self.gate.authorize_project(project_id, "projects:read")
        return self.db.query(ProjectApprover).filter(ProjectApprover.project_id == project_id).all()

    def add_project_approver(self, project_id: UUID, user_id: UUID) -> ProjectApprover:
        project, grant = self.gate.authorize_project(project_id, "projects:manage")
        self._require_open(project, "add_approver")
        require_active_member(self.db, grant.agency_id, user_id)
        if self._find(ProjectApprover, project.id, user_id) is not None:
            raise ValidationError("User is already a project approver", field="user_id")

        approver = ProjectApprover(project_id=project.id, user_id=user_id, created_by=self.caller.user_id)
        self.db.add(approver)
        self.db.flush()

        self.activity.log(
            grant.agency_id, "project_approver", approver.id, "project.approver_added",
            after=snapshot(approver), metadata={"project_id": str(project.id)},
        )
        refresh_review_status(
            self.db, self.activity, grant.agency_id, project_id=project.id, reason="project.approver_added"
        )
        return approver

    def remove_project_approver(self, project_approver_id: UUID) -> None:
        approver = self.db.get(ProjectApprover, project_approver_id)
        if approver is None:
            raise NotFoundError("project_approver", project_approver_id)
        project, grant = self.gate.authorize_project(approver.project_id, "projects:manage")
        self._require_open(project, "remove_approver")

        before = snapshot(approver)
        self.db.delete(approver)
        self.db.flush()

        self.activity.log(
            grant.agency_id, "project_approver", project_approver_id, "project.approver_removed",
            before=before, metadata={"project_id": str(project.id)},
        )
        # the removed approver may have been the only one left undecided
        refresh_review_status(
            self.db, self.activity, grant.agency_id, project_id=project.id, reason="project.approver_removed"
        )

    # Project users

    def add_project_user(self, project_id: UUID, user_id: UUID) -> ProjectUser:
        """Give an operator campaign-operator rights across every campaign of the project."""
        project, grant = self.gate.authorize_project(project_id, "projects:assign")
        self._require_open(project, "add_user")
        require_active_member(self.db, grant.agency_id, user_id)
        if self._find(ProjectUser, project.id, user_id) is not None:
            raise ValidationError("User is already assigned to this project", field="user_id")

        project_user = ProjectUser(project_id=project.id, user_id=user_id, created_by=self.caller.user_id)
        self.db.add(project_user)
        self.db.flush()

        self.activity.log(
            grant.agency_id, "project_user", project_user.id, "project.user_added",
            after=snapshot(project_user), metadata={"project_id": str(project.id)},
        )
        return project_user

    def remove_project_user(self, project_user_id: UUID) -> None:
        project_user = self.db.get(ProjectUser, project_user_id)
        if project_user is None:
            raise NotFoundError("project_user", project_user_id)
        project, grant = self.gate.authorize_project(project_user.project_id, "projects:assign")
        self._require_open(project, "remove_user")

        before = snapshot(project_user)
        self.db.delete(project_user)
        self.db.flush()

        self.activity.log(
            grant.agency_id, "project_user", project_user_id, "project.user_removed",
            before=before, metadata={"project_id": str(project.id)},
        )

    def _find(self, model, project_id: UUID, user_id: UUID):
        return self.db.query(model).filter(model.project_id == project_id, model.user_id == user_id).first()

    @staticmethod
    def _require_open(project: Project, attempted: str) -> None:
        if project.is_archived:
            raise InvalidStateError(
                "Archived projects cannot be modified",
                current_state="archived",
                attempted=attempted,
            )
