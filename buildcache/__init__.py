"""buildcache: content-addressed cache for compiled build artifacts.

Public Interface:
    Modules:
    - graph: Dependency graph resolution
    - cache: Fingerprints, staleness and the artifact store
    - providers: Build metadata providers
    - services: save / restore / clear orchestration
    - config: Configuration loading
"""

__version__ = "0.1.0"
