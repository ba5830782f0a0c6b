"""Vault access: note addressing and front-matter I/O."""

from linksync.vault.frontmatter import FrontmatterParseError
from linksync.vault.vault import Vault, VaultNote

__all__ = ["FrontmatterParseError", "Vault", "VaultNote"]
