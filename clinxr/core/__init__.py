"""
Core Client Logic
=================

This package contains the foundational logic of the ClinXR client: the
session credential store, the per-backend request clients and their
interceptor chain, navigation, and the immersive dashboard's selection,
layout and pointer-binding machinery.
"""
