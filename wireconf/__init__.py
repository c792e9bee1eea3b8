# wireconf/__init__.py
"""
wireconf – Declarative object-graph construction from configuration data.

Load a root ``Configuration`` with ``wireconf.loader.load_configuration``,
then build objects from it with a ``wireconf.container.Container``.

Configuration values support:
    - Value prefixes: ``$param``, ``?template {$param}``, ``@scheme:uri``,
      ``#cross.reference`` and ```escaped`` literals
    - Composition through ``*extends``, ``*config``, ``*mixin`` and ``*mixins``
    - Object instantiation through ``*type`` hints and ``*factory`` objects
    - Circular references between named objects (``@named:<name>``)
"""

__version__ = "0.1.0"
