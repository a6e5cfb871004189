from __future__ import annotations

from collections.abc import Iterable

DEFAULT_ARCHETYPE = "generic"

# First match wins. Some keywords appear under more than one archetype
# ("backend", "server"); the earlier entry takes them.
ARCHETYPE_KEYWORDS: tuple[tuple[str, frozenset[str]], ...] = (
    (
        "api",
        frozenset(
            {"api", "rest", "rest-api", "graphql", "grpc", "openapi", "webapi", "backend"}
        ),
    ),
    (
        "web",
        frozenset(
            {"web", "website", "webapp", "frontend", "react", "vue", "angular", "spa", "html"}
        ),
    ),
    (
        "service",
        frozenset({"service", "microservice", "daemon", "worker", "server", "backend", "cron"}),
    ),
    (
        "desktop",
        frozenset({"desktop", "gui", "electron", "wpf", "winforms", "qt", "tkinter"}),
    ),
    (
        "mobile",
        frozenset({"mobile", "android", "ios", "flutter", "react-native", "xamarin"}),
    ),
    (
        "library",
        frozenset({"library", "lib", "sdk", "package", "framework", "nuget", "npm", "pypi"}),
    ),
    (
        "console",
        frozenset({"cli", "console", "command-line", "terminal", "tool", "script"}),
    ),
)

ARCHETYPES: tuple[str, ...] = tuple(name for name, _ in ARCHETYPE_KEYWORDS) + (
    DEFAULT_ARCHETYPE,
)

DEPLOYMENT_GUIDANCE: dict[str, str] = {
    "api": (
        "Document how to run the API locally, required environment variables, the base URL "
        "and port, how to reach the API reference (OpenAPI/Swagger if present), and how the "
        "service is deployed (container image, health-check endpoint)."
    ),
    "web": (
        "Document how to install dependencies, start the development server, build the "
        "production bundle, and where the built assets are published or hosted."
    ),
    "service": (
        "Document how to run the service locally, its configuration, the process or "
        "container it runs as in production, and how to check that it is healthy."
    ),
    "desktop": (
        "Document supported operating systems, how to build the application from source, "
        "and how installers or release packages are produced and distributed."
    ),
    "mobile": (
        "Document the required SDKs and toolchains, how to run on an emulator or device, "
        "and how release builds are signed and published to the stores."
    ),
    "library": (
        "Document how to install the package from the registry, a minimal usage example, "
        "and how new versions are built and published."
    ),
    "console": (
        "Document how to install the tool, the main commands and options with examples, "
        "and how release binaries or packages are produced."
    ),
    "generic": (
        "Document how to build and run the project locally and how it is delivered or "
        "deployed, based on what the repository actually contains."
    ),
}


def classify(topics: Iterable[str]) -> str:
    normalized = {str(topic).strip().lower() for topic in topics}
    for archetype, keywords in ARCHETYPE_KEYWORDS:
        if normalized & keywords:
            return archetype
    return DEFAULT_ARCHETYPE


def deployment_guidance(archetype: str) -> str:
    return DEPLOYMENT_GUIDANCE.get(archetype, DEPLOYMENT_GUIDANCE[DEFAULT_ARCHETYPE])
