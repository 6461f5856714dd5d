"""Capabilities used by release tasks (files, manifest, changelog, hosting).

Import from the submodules directly; :mod:`firefly.services.container`
depends on :mod:`firefly.git`, which itself imports
:mod:`firefly.services.dry_run`.
"""
