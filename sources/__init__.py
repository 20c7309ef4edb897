"""Source resolution: local uploads, direct download and GitHub-authenticated fetch."""

from .resolver import SourceResolver, save_upload
from .url_utils import (
    GitHubFileRef,
    GitHubInfo,
    determine_source_type,
    extract_arxiv_id,
    extract_github_info,
    extract_paper_path,
    extract_youtube_id,
    is_valid_url,
    parse_github_file_url,
)

__all__ = [
    "SourceResolver",
    "save_upload",
    "GitHubFileRef",
    "GitHubInfo",
    "determine_source_type",
    "extract_arxiv_id",
    "extract_github_info",
    "extract_paper_path",
    "extract_youtube_id",
    "is_valid_url",
    "parse_github_file_url",
]
