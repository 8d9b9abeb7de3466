"""WordPress module synchronization package.

Submodules:
- cli: WP-CLI runner
- wp_json: WP-CLI list output parsing
- site: module types, project layout, discovery and visibility
- versions: Composer version normalization and constraints
- registry: installed and remote Composer repositories
- manifest: composer.json load/save
- reconcile: plugin/theme reconciliation and link farm
- installer: Composer lifecycle hooks
"""

# Intentionally minimal; logic lives in submodules and __main__.
