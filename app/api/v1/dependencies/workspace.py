from fastapi import Depends, Request

from app.services.session.workspace import ProjectSession, WellWorkspace


def get_workspace(request: Request) -> WellWorkspace:
    """The workspace owned by the running application."""
    return request.app.state.workspace


def get_project(project_id: str, workspace: WellWorkspace = Depends(get_workspace)) -> ProjectSession:
    """
    Dependency resolving `{project_id}` to a stored project.

    Raises:
        NotFoundError: If the project does not exist or has expired
    """
    return workspace.get(project_id)
