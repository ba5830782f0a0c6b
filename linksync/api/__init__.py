"""Task store client."""

from linksync.api.singularity import SingularityClient, normalize_array_response

__all__ = ["SingularityClient", "normalize_array_response"]
