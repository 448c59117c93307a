"""
BugSage - Shared Constants
==========================

Identifiers and fixed vocabularies used across the BugSage services.
"""

from enum import Enum


class Framework(str, Enum):
    """Frameworks the log classifier can report."""
    REACT = "React"
    VUE = "Vue"
    ANGULAR = "Angular"
    NEXTJS = "NextJS"


class Language(str, Enum):
    """Languages the log classifier can report."""
    JAVASCRIPT = "JavaScript/TypeScript"
    PYTHON = "Python"
    JAVA = "Java"
    DOTNET = "C#/.NET"


class Environment(str, Enum):
    """Runtime environments the log classifier can report."""
    LOCAL = "local"
    PRODUCTION = "production"
    STAGING = "staging"
    DEVELOPMENT = "development"


# Values offered by the analysis form, mapped onto classifier identifiers
FRONTEND_HINTS: dict[str, Framework] = {
    "react": Framework.REACT,
    "vue": Framework.VUE,
    "angular": Framework.ANGULAR,
    "nextjs": Framework.NEXTJS,
}

BACKEND_HINTS: dict[str, Language] = {
    "nodejs": Language.JAVASCRIPT,
    "python": Language.PYTHON,
    "java": Language.JAVA,
    "dotnet": Language.DOTNET,
}

NOT_SPECIFIED = "Not specified"

HISTORY_CSV_COLUMNS = ("Date", "Frontend", "Backend", "Platform", "Logs", "Analysis")
