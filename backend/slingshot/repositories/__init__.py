"""
Repository layer for database operations.
"""
from slingshot.repositories.base import BaseRepository
from slingshot.repositories.build_repository import BuildRepository
from slingshot.repositories.deploy_repository import DeployRepository
from slingshot.repositories.release_repository import ReleaseRepository

__all__ = [
    "BaseRepository",
    "BuildRepository",
    "DeployRepository",
    "ReleaseRepository",
]
