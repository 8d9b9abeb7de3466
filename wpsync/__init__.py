"""wpsync: keep WordPress plugin/theme directories in step with Composer.

Subpackages:
- wordpress: WP-CLI access, package registry, reconciliation and hooks
"""
