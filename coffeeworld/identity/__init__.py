"""
Identity Module for Coffee World

World ID proof verification:
- Request payload normalization (MiniKit and IDKit)
- Cloud and simulated verification strategies
- Subject id derivation
"""

from coffeeworld.identity.verifier import (
    WorldIDProof,
    VerificationLevel,
    VerificationResult,
    IdentityVerifier,
    WorldcoinCloudVerifier,
    SimulatedVerifier,
    create_verifier,
    derive_subject_id,
)

__all__ = [
    "WorldIDProof",
    "VerificationLevel",
    "VerificationResult",
    "IdentityVerifier",
    "WorldcoinCloudVerifier",
    "SimulatedVerifier",
    "create_verifier",
    "derive_subject_id",
]
