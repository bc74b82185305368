"""HTTP surface for the quiz generator.

Import submodules directly, e.g. `from server.main import create_app`.
"""

__all__: list[str] = []
