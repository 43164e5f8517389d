"""Security token construction for the Git Repositories namespace"""

from typing import List, Optional

from .models import BRANCH_REF_PREFIX, Scope, ScopeLevel

TOKEN_ROOT = "repoV2"


def encode_branch_name(branch: str) -> str:
    """Encode a branch name the way the Git namespace does in tokens.

    Every path segment is written as the hex of its UTF-16LE bytes, so
    ``main`` becomes ``6d00610069006e00``.
    """
    if branch.startswith(BRANCH_REF_PREFIX):
        branch = branch[len(BRANCH_REF_PREFIX):]
    segments = [s for s in branch.split("/") if s]
    if not segments:
        raise ValueError(f"Invalid branch name: {branch!r}")
    return "/".join(segment.encode("utf-16-le").hex() for segment in segments)


def project_token(project_id: str) -> str:
    return f"{TOKEN_ROOT}/{project_id}"


def repository_token(project_id: str, repository_id: str) -> str:
    return f"{TOKEN_ROOT}/{project_id}/{repository_id}"


def branch_token(project_id: str, repository_id: str, branch: str) -> str:
    return f"{repository_token(project_id, repository_id)}/{BRANCH_REF_PREFIX}{encode_branch_name(branch)}"


def build_scope_chain(
    project_id: str,
    repository_id: str,
    branch: Optional[str] = None,
) -> List[Scope]:
    """Scopes for one repository, most specific first"""
    chain: List[Scope] = []
    if branch:
        chain.append(Scope(ScopeLevel.BRANCH, branch_token(project_id, repository_id, branch)))
    chain.append(Scope(ScopeLevel.REPOSITORY, repository_token(project_id, repository_id)))
    chain.append(Scope(ScopeLevel.PROJECT, project_token(project_id)))
    return chain
