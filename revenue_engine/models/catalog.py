"""Project catalog and canonical entity mapping.

External systems can report the same project or company under several
identifiers. The catalog maps each identifier to its canonical (primary)
identifier so that revenue rolls up into a single project and company.
"""

import logging
from typing import Dict, Iterable, List, Optional

from pydantic import Field, field_validator

from revenue_engine.models.base import BaseDataModel

logger = logging.getLogger(__name__)


class CatalogProject(BaseDataModel):
    """One project row of the catalog.

    Attributes:
        project_id: External project identifier
        project_name: Display name
        client_id: External client (company) identifier
        client_name: Client display name
        canonical_project_id: Primary project id when this row is a duplicate
        canonical_client_id: Primary client id when the client is a duplicate
    """

    project_id: str = Field(..., min_length=1, description="External project id")
    project_name: str = Field("", description="Project name")
    client_id: str = Field("", description="External client id")
    client_name: str = Field("", description="Client name")
    canonical_project_id: Optional[str] = Field(None, description="Primary project")
    canonical_client_id: Optional[str] = Field(None, description="Primary client")

    @field_validator("project_id")
    @classmethod
    def validate_project_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("project_id cannot be empty or whitespace")
        return v.strip()

    @field_validator("canonical_project_id", "canonical_client_id")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank canonical ids as "is its own primary"."""
        if v is None or not v.strip():
            return None
        return v.strip()


class ProjectCatalog:
    """Lookup of known projects with canonical id resolution.

    Example:
        >>> catalog = ProjectCatalog([
        ...     CatalogProject(project_id="P-1", project_name="Web", client_id="C-1"),
        ...     CatalogProject(project_id="P-1b", canonical_project_id="P-1"),
        ... ])
        >>> catalog.canonical_project_id("P-1b")
        'P-1'
        >>> catalog.canonical_project_id("missing") is None
        True
    """

    def __init__(self, projects: Optional[Iterable[CatalogProject]] = None):
        self._projects: Dict[str, CatalogProject] = {}
        self._client_names: Dict[str, str] = {}
        self._client_canonical: Dict[str, str] = {}
        for project in projects or []:
            self.add(project)

    def add(self, project: CatalogProject) -> None:
        """Register a project row; a later row with the same id replaces it."""
        if project.project_id in self._projects:
            logger.warning(f"Duplicate catalog row for project {project.project_id}")
        self._projects[project.project_id] = project
        if project.client_id:
            if project.client_name:
                self._client_names.setdefault(project.client_id, project.client_name)
            if project.canonical_client_id:
                self._client_canonical[project.client_id] = project.canonical_client_id

    def __contains__(self, project_id: str) -> bool:
        return project_id in self._projects

    def __len__(self) -> int:
        return len(self._projects)

    def get(self, project_id: str) -> Optional[CatalogProject]:
        return self._projects.get(project_id)

    def canonical_project_id(self, project_id: str) -> Optional[str]:
        """Resolve a project id to its primary id.

        Returns:
            The canonical id, or None when the project is unknown
        """
        project = self._projects.get(project_id)
        if project is None:
            return None
        return project.canonical_project_id or project.project_id

    def canonical_client_id(self, project_id: str) -> str:
        """Resolve the canonical client of a (canonical) project.

        The client is taken from the primary project's row and then mapped
        through the client's own canonical id.
        """
        canonical = self.canonical_project_id(project_id)
        if canonical is None:
            return ""
        project = self._projects.get(canonical) or self._projects[project_id]
        client_id = project.canonical_client_id or project.client_id
        return self._client_canonical.get(client_id, client_id)

    def project_name(self, project_id: str) -> str:
        """Display name of a project, falling back to its id."""
        project = self._projects.get(project_id)
        if project is not None and project.project_name:
            return project.project_name
        return project_id

    def client_name(self, client_id: str) -> str:
        """Display name of a client, falling back to its id."""
        return self._client_names.get(client_id) or client_id or "Unassigned"

    def project_ids(self) -> List[str]:
        return sorted(self._projects)

    def canonical_project_ids(self) -> List[str]:
        """Ids of the canonical projects, aliases folded into their primary."""
        return sorted({self.canonical_project_id(pid) for pid in self._projects})
