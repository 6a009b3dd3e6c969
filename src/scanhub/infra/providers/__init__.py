from .bitbucket import BitbucketProvider
from .generic import GenericGitProvider
from .gitea import GiteaProvider
from .github import GitHubProvider
from .gitlab import GitLabProvider
from .hosted import HostedGitProvider
from .registry import ProviderRegistry

__all__ = [
    "BitbucketProvider",
    "GenericGitProvider",
    "GiteaProvider",
    "GitHubProvider",
    "GitLabProvider",
    "HostedGitProvider",
    "ProviderRegistry",
]
