import os
from pathlib import Path

HOME = Path(os.environ.get("SSRCON_HOME", Path.home() / ".ssrcon")).expanduser()
PROPERTIES = HOME / "ssrcon.properties"
LOG_FILE = HOME / "SSRCON.log"

def read_properties(path: Path) -> dict:
    props = {}
    if path.exists():
        for line in path.read_text(encoding="utf-8", errors="ignore").splitlines():
            line=line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                k,v = line.split("=",1)
                props[k.strip()]=v.strip()
    return props

def parse_port(text: str, default: int) -> int:
    """Port from user text; unparsable, negative or out-of-range values give `default`."""
    try:
        port = int(str(text).strip())
    except ValueError:
        return default
    if port < 0 or port > 65535:
        return default
    return port
