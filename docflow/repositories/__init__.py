from docflow.repositories.base_repository import BaseRepository
from docflow.repositories.document_repository import DocumentRepository
from docflow.repositories.job_repository import JobRepository
from docflow.repositories.upload_repository import UploadRepository
from docflow.repositories.user_repository import UserRepository
from docflow.repositories.workspace_repository import WorkspaceRepository

__all__ = [
    "BaseRepository",
    "DocumentRepository",
    "JobRepository",
    "UploadRepository",
    "UserRepository",
    "WorkspaceRepository",
]
