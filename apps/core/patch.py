"""
Partial-update value type.

A patch is a dataclass whose fields default to UNSET. Only fields the caller
actually supplied are written, so "leave unchanged" and "set to None" stay
distinct.
"""
from dataclasses import fields


class _Unset:
    def __repr__(self):
        return 'UNSET'

    def __bool__(self):
        return False


UNSET = _Unset()


def patch_from_data(patch_cls, data: dict):
    """Build a patch from a dict, ignoring keys the patch does not declare."""
    names = {f.name for f in fields(patch_cls)}
    return patch_cls(**{k: v for k, v in data.items() if k in names})


def changed_fields(patch) -> dict:
    return {
        f.name: getattr(patch, f.name)
        for f in fields(patch)
        if getattr(patch, f.name) is not UNSET
    }


def apply_patch(instance, patch) -> list:
    """
    Set every supplied field on `instance`.
    Returns the list of field names suitable for save(update_fields=...).
    """
    update_fields = []
    for name, value in changed_fields(patch).items():
        if getattr(instance, name) != value:
            setattr(instance, name, value)
            update_fields.append(name)
    return update_fields
