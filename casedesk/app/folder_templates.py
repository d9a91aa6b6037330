DEFAULT_FOLDERS = [
    {
        "name": "Case Files",
        "description": "Legal documents, court filings, and case-related paperwork",
        "type": "default",
    },
    {
        "name": "Identity Files",
        "description": "Client identification documents and personal records",
        "type": "default",
    },
    {
        "name": "Evidences",
        "description": "Evidence materials, photos, recordings, and supporting documents",
        "type": "default",
    },
    {
        "name": "Contracts",
        "description": "Legal contracts, agreements, and binding documents",
        "type": "default",
    },
]

DEFAULT_FOLDER_NAMES = frozenset(folder["name"] for folder in DEFAULT_FOLDERS)
