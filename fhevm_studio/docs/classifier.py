"""Classification of a source unit for documentation purposes.

Decides the dominant operation, the capability sections that apply and the
special document layouts.  Everything here is a presence test on raw text;
an absent marker means the feature is absent.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Operation table
# ---------------------------------------------------------------------------

class Operation(BaseModel):
    """One homomorphic operation the synthesizer can recognise."""

    name: str = Field(..., description="Qualified call name, e.g. 'FHE.min'")
    summary: str = Field(..., description="Short phrase used in generated prose")
    concept: str = Field(default="", description="Paragraph used as the generic concept text")

    @property
    def pattern(self) -> re.Pattern[str]:
        return re.compile(re.escape(self.name) + r"\(")

    def concept_text(self) -> str:
        if self.concept:
            return self.concept
        return (
            f"The `{self.name}` function performs homomorphic operations on encrypted "
            "values without decrypting them."
        )


# Ordered from most specific to most generic: the first match wins.
OPERATION_TABLE: tuple[Operation, ...] = (
    Operation(
        name="FHE.min",
        summary="finding the minimum of two encrypted values",
        concept="The `FHE.min()` function compares two encrypted values and returns the smaller one, all without decrypting either value.",
    ),
    Operation(
        name="FHE.max",
        summary="finding the maximum of two encrypted values",
        concept="The `FHE.max()` function compares two encrypted values and returns the larger one, all without decrypting either value.",
    ),
    Operation(
        name="FHE.add",
        summary="adding encrypted values",
        concept="The `FHE.add()` function performs addition on encrypted values, computing the sum without ever decrypting the operands.",
    ),
    Operation(
        name="FHE.sub",
        summary="subtracting encrypted values",
        concept="The `FHE.sub()` function performs subtraction on encrypted values, computing the difference without decrypting.",
    ),
    Operation(
        name="FHE.mul",
        summary="multiplying encrypted values",
        concept="The `FHE.mul()` function performs multiplication on encrypted values, computing the product without decrypting.",
    ),
    Operation(
        name="FHE.div",
        summary="dividing encrypted values",
        concept="The `FHE.div()` function performs division on encrypted values, computing the quotient without decrypting.",
    ),
    Operation(
        name="FHE.xor",
        summary="bitwise XOR on encrypted values",
        concept="The `FHE.xor()` function performs bitwise XOR on encrypted values, computing the result without decrypting.",
    ),
    Operation(
        name="FHE.and",
        summary="bitwise AND on encrypted values",
        concept="The `FHE.and()` function performs bitwise AND on encrypted values.",
    ),
    Operation(
        name="FHE.or",
        summary="bitwise OR on encrypted values",
        concept="The `FHE.or()` function performs bitwise OR on encrypted values.",
    ),
    Operation(
        name="FHE.not",
        summary="bitwise NOT on encrypted values",
        concept="The `FHE.not()` function performs bitwise NOT (complement) on encrypted values.",
    ),
    Operation(
        name="FHE.select",
        summary="conditional selection (if-then-else) on encrypted values",
        concept="The `FHE.select()` function performs conditional selection (if-then-else) on encrypted values based on an encrypted boolean condition.",
    ),
    Operation(
        name="FHE.rem",
        summary="remainder/modulo operation on encrypted values",
        concept="The `FHE.rem()` function computes the remainder (modulo) of an encrypted value divided by a plaintext modulus.",
    ),
    Operation(name="FHE.ge", summary="greater-than-or-equal comparison"),
    Operation(name="FHE.gt", summary="greater-than comparison"),
    Operation(name="FHE.le", summary="less-than-or-equal comparison"),
    Operation(name="FHE.lt", summary="less-than comparison"),
    Operation(name="FHE.eq", summary="equality comparison"),
)


def dominant_operation(
    source_text: str, table: tuple[Operation, ...] = OPERATION_TABLE
) -> Operation | None:
    """Return the first operation in *table* whose call appears in the source."""
    for operation in table:
        if operation.pattern.search(source_text):
            return operation
    return None


# ---------------------------------------------------------------------------
# Capabilities and document kinds
# ---------------------------------------------------------------------------

class Capability(str, Enum):
    ENCRYPTION = "encryption"
    PERMISSIONS = "permissions"
    USER_DECRYPTION = "user-decryption"
    PUBLIC_DECRYPTION = "public-decryption"


class DocumentKind(str, Enum):
    STANDARD = "standard"
    PERMISSIONS_ANTI_PATTERN = "permissions-anti-pattern"
    OMNIBUS = "omnibus"


def detect_capabilities(source_text: str, test_text: str) -> list[Capability]:
    """Capabilities whose textual marker is present, in a fixed order."""
    found: list[Capability] = []
    if "FHE.fromExternal" in source_text or "createEncryptedInput" in test_text:
        found.append(Capability.ENCRYPTION)
    if "FHE.allow" in source_text:
        found.append(Capability.PERMISSIONS)
    if "userDecrypt" in test_text:
        found.append(Capability.USER_DECRYPTION)
    if "makePubliclyDecryptable" in source_text or "publicDecrypt" in test_text:
        found.append(Capability.PUBLIC_DECRYPTION)
    return found


def document_kind(title: str, category_label: str, source_text: str) -> DocumentKind:
    anti_pattern = "anti-pattern" in category_label.lower() or "anti-pattern" in title.lower()
    if anti_pattern and "Permissions" in title:
        return DocumentKind.PERMISSIONS_ANTI_PATTERN
    if "Omnibus" in title or "ERC7984Omnibus" in source_text:
        return DocumentKind.OMNIBUS
    return DocumentKind.STANDARD


class Classification(BaseModel):
    """Everything the composer needs to pick section variants."""

    operation: Operation | None = None
    capabilities: list[Capability] = Field(default_factory=list)
    kind: DocumentKind = DocumentKind.STANDARD

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities


def classify(title: str, category_label: str, source_text: str, test_text: str) -> Classification:
    return Classification(
        operation=dominant_operation(source_text),
        capabilities=detect_capabilities(source_text, test_text),
        kind=document_kind(title, category_label, source_text),
    )


# ---------------------------------------------------------------------------
# Code description
# ---------------------------------------------------------------------------

_DESCRIBED_CALLS: tuple[tuple[str, str], ...] = (
    ("FHE.min", "finding the minimum of two encrypted values"),
    ("FHE.max", "finding the maximum of two encrypted values"),
    ("FHE.add", "adding encrypted values"),
    ("FHE.sub", "subtracting encrypted values"),
    ("FHE.mul", "multiplying encrypted values"),
    ("FHE.div", "dividing encrypted values"),
    ("FHE.rem", "remainder/modulo operations"),
    ("FHE.xor", "bitwise XOR operations"),
    ("FHE.and", "bitwise AND operations"),
    ("FHE.or", "bitwise OR operations"),
    ("FHE.select", "conditional selection"),
    ("FHE.fromExternal", "converting external encrypted inputs"),
    ("FHE.decrypt", "decrypting values"),
    ("FHE.publicDecrypt", "public decryption"),
)


def describe_code(source_text: str) -> str:
    """Build a one-sentence description of a source unit from its code alone.

    Used when the unit's comments say too little.  The first matching theme
    (public decryption, auction, token, vesting, encryption, operations,
    counter) provides the sentence; permission and input-proof usage append a
    trailing clause.  Returns an empty string when nothing is recognised.
    """
    text = source_text
    calls = [phrase for call, phrase in _DESCRIBED_CALLS if f"{call}(" in text]
    analysis: list[str] = []

    if "makePubliclyDecryptable" in text or "publicDecrypt" in text:
        if "multiple" in text or "array" in text or "[]" in text:
            analysis.append(
                "This example demonstrates public decryption with multiple encrypted values, "
                "allowing anyone to decrypt results without requiring individual user permissions"
            )
        else:
            analysis.append(
                "This example demonstrates public decryption, allowing anyone to decrypt "
                "encrypted values without requiring individual user permissions"
            )
    elif "mapping" in text and "auction" in text:
        analysis.append(
            "This example implements a confidential auction mechanism where bids are "
            "encrypted during the bidding phase"
        )
    elif "ERC7984" in text:
        if "Omnibus" in text:
            analysis.append(
                "This example demonstrates the omnibus pattern for confidential token "
                "transfers with encrypted sub-account addresses"
            )
        elif "Votes" in text or "Voting" in text:
            analysis.append(
                "This example implements confidential voting with encrypted vote tracking "
                "and delegation"
            )
        else:
            analysis.append(
                "This example demonstrates confidential token operations with encrypted "
                "balances and transfers"
            )
    elif "VestingWallet" in text or "vesting" in text:
        analysis.append(
            "This example implements confidential token vesting with encrypted amounts "
            "and time-based release"
        )
    elif "encrypt" in text and "decrypt" not in text and "externalEuint" in text:
        if "multiple" in text or "array" in text:
            analysis.append(
                "This example demonstrates encrypting and handling multiple values in a single "
                "transaction using external encrypted inputs with input proofs for verification"
            )
        else:
            analysis.append(
                "This example demonstrates the FHE encryption mechanism, showing how to convert "
                "external encrypted inputs to internal encrypted values using input proofs"
            )
    elif calls:
        analysis.append(
            f"This example demonstrates {', '.join(calls[:3])} using Fully Homomorphic Encryption"
        )
    elif "increment" in text or "decrement" in text or "counter" in text:
        analysis.append(
            "This example demonstrates building a confidential counter that stores and "
            "manipulates encrypted values"
        )
    elif "encrypt" in text and "decrypt" in text:
        analysis.append(
            "This example demonstrates the complete encryption and decryption workflow for "
            "confidential data"
        )

    if "FHE.allowThis" in text:
        analysis.append("and shows how to manage FHE permissions for both contracts and users")
    if "externalEuint" in text and "inputProof" in text:
        analysis.append("using external encrypted inputs with input proofs for verification")

    return " ".join(analysis)
