"""
Application Configuration and Constants
=======================================

This module contains the configuration values, constants, and defaults used
throughout the ClinXR client. It serves as a single source of truth for:

- Backend names, their environment variables and local-development URLs
- Local storage location and the credential key
- Route paths for the form and immersive surfaces
- Immersive layout geometry and scene-target node placement
- Network and binding retry parameters

Note:
    All constants use UPPER_SNAKE_CASE naming convention. Modify these values to
    change application-wide behavior without touching business logic.

Author: ClinXR Project
"""

import os
from pathlib import Path

# ============================================================================
# APPLICATION SETTINGS
# ============================================================================

APP_NAME = "ClinXR"

# ============================================================================
# BACKEND ENDPOINTS
# ============================================================================
# Three independent data services. Each base URL can be overridden through an
# environment variable; the defaults match a local development setup.

BACKEND_PRIMARY = "primary"        # Patient records and vital signs
BACKEND_GENOMIC = "genomic"        # SNPs, rsIDs and genomic studies
BACKEND_AGGREGATOR = "aggregator"  # Document upload and aggregation

BACKEND_NAMES = (BACKEND_PRIMARY, BACKEND_GENOMIC, BACKEND_AGGREGATOR)

BACKEND_URL_ENV_VARS = {
    BACKEND_PRIMARY: "CLINXR_PRIMARY_API_URL",
    BACKEND_GENOMIC: "CLINXR_GENOMIC_API_URL",
    BACKEND_AGGREGATOR: "CLINXR_AGGREGATOR_API_URL",
}

DEFAULT_BACKEND_URLS = {
    BACKEND_PRIMARY: "http://localhost:8080",
    BACKEND_GENOMIC: "http://127.0.0.1:5000",
    BACKEND_AGGREGATOR: "http://127.0.0.1:5001",
}

# Authentication endpoint on the primary backend
AUTHENTICATE_ENDPOINT = "/authenticate"

# ============================================================================
# LOCAL STORAGE
# ============================================================================
# A single JSON key-value file in the user's home directory plays the role of
# browser-local storage. Only the credential is written to it.

STORAGE_PATH_ENV_VAR = "CLINXR_STORAGE_PATH"
DEFAULT_STORAGE_PATH = Path.home() / ".clinxr_storage.json"

# Key under which the bearer credential is persisted
TOKEN_STORAGE_KEY = "token"


def storage_path() -> Path:
    """Resolve the local storage file, honouring the environment override."""
    override = os.environ.get(STORAGE_PATH_ENV_VAR, "").strip()
    return Path(override).expanduser() if override else DEFAULT_STORAGE_PATH

# ============================================================================
# ROUTES
# ============================================================================

ENTRY_PATH = "/"
DASHBOARD_PATH = "/dashboard"
XR_ENTRY_PATH = "/xr"
XR_DASHBOARD_PATH = "/xr/dashboard"

# ============================================================================
# USER-VISIBLE MESSAGES
# ============================================================================

MESSAGE_FORBIDDEN = "Access denied. Please check your permissions."
MESSAGE_REQUEST_FAILED = "Request failed. Please try again."
MESSAGE_INVALID_CREDENTIALS = "Invalid credentials"

# ============================================================================
# IMMERSIVE LAYOUT
# ============================================================================
# Patients are placed on a horizontal ring around the viewer.

PATIENT_RING_RADIUS = 1.5
PATIENT_RING_ELEVATION = 1.5

# Node identifiers and fixed positions of the visualization targets shown once
# a patient is selected. Keyed by SceneTarget value.
SCENE_TARGET_NODES = {
    "phenome": ("phenome-box", (0.0, 1.0, -2.0)),
    "genome": ("genome-box", (2.0, 1.0, -2.0)),
    "proteome": ("proteome-box", (-2.0, 1.0, -2.0)),
}

PATIENT_NODE_PREFIX = "patient-"

# ============================================================================
# NETWORK AND BINDING CONFIGURATION
# ============================================================================

# Maximum time to wait for network responses before timing out
NETWORK_TIMEOUT_SECONDS = 30

# How many render-completion signals a pending binding waits for before the
# synchronizer gives up on the node
MAX_BINDING_ATTEMPTS = 5
