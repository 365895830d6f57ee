from pathlib import Path

_ROOT_CACHE = None

def get_project_root() -> Path:
    """
    Return the project root (folder containing 'config/config.yaml').
    Looks upward from the working directory, then from this file.
    Caches result for speed.
    """
    global _ROOT_CACHE
    if _ROOT_CACHE is not None:
        return _ROOT_CACHE

    cwd = Path.cwd().resolve()
    here = Path(__file__).resolve()
    for start in (cwd, here):
        for parent in [start] + list(start.parents):
            if (parent / "config" / "config.yaml").exists():
                _ROOT_CACHE = parent
                return parent
    # Fallback to the working directory
    _ROOT_CACHE = cwd
    return _ROOT_CACHE

def resolve_path(*parts: str) -> Path:
    """Join parts onto project root."""
    return get_project_root().joinpath(*parts)
