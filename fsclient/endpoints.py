# Paths are relative to the configured base URL; update if the server routes change.

FILES = {
    "list": {
        "method": "GET",
        "path": "/api/files",
    },
    "delete": {
        "method": "DELETE",
        "path": "/api/files",
    },
    "download": {
        "method": "GET",
        "path": "/api/files/download",
    },
    "info": {
        "method": "GET",
        "path": "/api/files/info",
    },
}

DIRECTORIES = {
    "create": {
        "method": "POST",
        "path": "/api/directories",
    }
}

UPLOAD = {
    "upload": {
        "method": "POST",
        "path": "/api/upload",
    }
}
