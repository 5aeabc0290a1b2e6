"""Markdown composition of one example document.

The document has a fixed section order: Overview, What You'll Learn, Key
Concepts, Step-by-Step Walkthrough, Common Pitfalls, Best Practices and
Real-World Use Cases, followed by a GitBook hint block and tabs holding the
verbatim source and test units.  Sections with nothing to say are omitted
rather than emitted empty (Overview, Walkthrough, Best Practices and Use
Cases always have content).
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field

from fhevm_studio.docs.classifier import (
    Capability,
    Classification,
    DocumentKind,
    describe_code,
)
from fhevm_studio.docs.extractor import (
    FailureCase,
    SourceFacts,
    extract_description,
    tidy_sentence,
)

MAX_PITFALLS = 3

# A curated description naming one of these calls is kept as the overview.
_SPECIFIC_CALL = re.compile(
    r"FHE\.(eq|ne|gt|lt|ge|le|select|add|sub|mul|div|rem|min|max|xor|and|or|not"
    r"|allowThis|allow|allowTransient)",
    re.IGNORECASE,
)


class DocumentInput(BaseModel):
    """The texts and metadata one document is composed from."""

    title: str
    description: str = ""
    category_label: str = ""
    chapter: str | None = None
    unit_name: str = Field(..., description="Tab title of the source unit, without extension")
    test_file_name: str = Field(..., description="Tab title of the test unit")
    source_text: str
    test_text: str


# ---------------------------------------------------------------------------
# Fixed texts
# ---------------------------------------------------------------------------

_ANTI_PATTERN_LEARN = (
    "**Missing allowThis()** - What happens when you forget to grant contract permission after FHE operations",
    "**Missing allow(user)** - Why users can't decrypt values without explicit permission",
    "**View function permissions** - View functions CAN return handles, but users need permission to decrypt",
    "**Transfer permission propagation** - Why recipients can't use transferred balances without permission grants",
    "**Cross-contract delegation** - Using allowTransient for temporary access in cross-contract calls",
)

_ANTI_PATTERN_CONCEPTS = (
    (
        "FHE.allowThis() Permission",
        "After any FHE computation that produces a new encrypted value, the contract must call "
        "`FHE.allowThis(value)` to grant itself permission to use that value in future operations. "
        "Without this, the contract loses access to its own computed values.",
    ),
    (
        "FHE.allow(user) Permission",
        "For users to decrypt encrypted values, they must be explicitly granted permission via "
        "`FHE.allow(value, userAddress)`. Without this, even if the value is stored correctly, "
        "no one can decrypt it.",
    ),
    (
        "View Functions and Encrypted Handles",
        "**Important clarification**: View functions CAN return encrypted handles (euint32, ebool, "
        "etc.). This is explicitly supported in FHEVM. However, the caller must have been granted "
        "permission to decrypt the handle. The common misconception is that view functions can't "
        "return encrypted values - they can, but ACL modifications (allow, allowThis) cannot happen "
        "in view functions.",
    ),
    (
        "Permission Propagation in Transfers",
        "When transferring encrypted values between users, both sender and recipient need permission "
        "updates. The sender's new balance and the recipient's new balance are both new encrypted "
        "values that require fresh permission grants.",
    ),
    (
        "Cross-Contract Permissions with allowTransient",
        "When calling another contract that needs to operate on your encrypted values, use "
        "`FHE.allowTransient(value, targetContract)` to grant temporary permission that expires at "
        "the end of the transaction. This is more gas-efficient than permanent permissions for "
        "single-use delegations.",
    ),
)

_OMNIBUS_CONCEPTS = (
    (
        "Omnibus Pattern",
        "The omnibus pattern is useful for exchanges, custodians, or intermediaries where:\n"
        "- **Multiple sub-accounts** are tracked off-chain (not stored on-chain)\n"
        "- **Onchain settlement** occurs between omnibus accounts (omnibusFrom, omnibusTo)\n"
        "- **Sub-account addresses** (sender/recipient) are encrypted in events for privacy\n"
        "- **Omnibus accounts** (omnibusFrom/omnibusTo) are public addresses\n"
        "- **ACL permissions** are automatically granted to omnibus accounts\n"
        "- **Events** (OmnibusConfidentialTransfer) allow off-chain tracking of sub-account balances",
    ),
    (
        "Encrypted Addresses in Omnibus Transfers",
        "In omnibus transfers, both the amount and the sub-account addresses are encrypted:\n"
        "- **Encrypted sender address**: The sub-account sending tokens (encrypted for privacy)\n"
        "- **Encrypted recipient address**: The sub-account receiving tokens (encrypted for privacy)\n"
        "- **Encrypted amount**: The amount being transferred (standard FHE encryption)\n"
        "- All three values are created in a single encrypted input and share the same input proof\n"
        "- The `OmnibusConfidentialTransfer` event contains these encrypted addresses for off-chain tracking",
    ),
)

_ENCRYPTION_CONCEPT = (
    "Off-Chain Encryption",
    "Values are encrypted **locally** (on the client side) before being sent to the contract:\n"
    "- Plaintext values never appear in transactions\n"
    "- Encryption is cryptographically bound to [contract, user] pair\n"
    "- Input proofs verify the binding",
)

_PERMISSIONS_CONCEPT = (
    "FHE Permissions",
    "Permissions control who can:\n"
    "- **Perform operations**: Contracts need `FHE.allowThis()`\n"
    "- **Decrypt values**: Users need `FHE.allow()`",
)

_ANTI_PATTERN_STEPS = (
    (
        "Understand the Anti-Pattern",
        "Each function in this contract demonstrates a common permission mistake. The \"wrong\" "
        "functions show what NOT to do, while the \"correct\" functions show the proper implementation.",
    ),
    (
        "Compare Wrong vs Correct Implementations",
        "Study the pairs of functions:\n"
        "- `wrongMissingAllowThis()` vs `correctWithAllowThis()`\n"
        "- `wrongMissingUserAllow()` vs `correctWithUserAllow()`\n"
        "- `wrongStoreWithoutPermission()` vs `correctStoreWithPermission()`\n"
        "- `wrongTransferWithoutPermission()` vs `correctTransferWithPermission()`\n"
        "- `wrongCrossContractCall()` vs `correctCrossContractCall()`",
    ),
    (
        "Test Each Scenario",
        "Run the test suite to see how each anti-pattern manifests:\n"
        "- \"Correct\" functions allow successful decryption\n"
        "- \"Wrong\" functions store values but users can't access them",
    ),
    (
        "Apply to Your Code",
        "When writing your own contracts:\n"
        "1. Always call `FHE.allowThis()` after any FHE computation\n"
        "2. Call `FHE.allow(value, user)` for each user who needs to decrypt\n"
        "3. Update permissions for all parties in transfers\n"
        "4. Use `FHE.allowTransient()` for cross-contract calls",
    ),
)

_OMNIBUS_STEPS = (
    (
        "Mint Tokens to Omnibus Account",
        "First, mint tokens to the omnibus account (omnibusFrom) that will handle the transfers. "
        "Use `$_mint()` to mint tokens to the omnibus account.",
    ),
    (
        "Create Encrypted Values for Omnibus Transfer",
        "Create all encrypted values in a single encrypted input:\n"
        "- Encrypt the sender sub-account address using `.addAddress(senderAddress)`\n"
        "- Encrypt the recipient sub-account address using `.addAddress(recipientAddress)`\n"
        "- Encrypt the transfer amount using `.add64(amount)`\n"
        "- All three values share the same input proof when created together",
    ),
    (
        "Perform Omnibus Transfer",
        "Call `confidentialTransferOmnibus()` or `confidentialTransferFromOmnibus()` with:\n"
        "- The omnibusTo address (public address)\n"
        "- The encrypted sender address (first handle)\n"
        "- The encrypted recipient address (second handle)\n"
        "- The encrypted amount (third handle)\n"
        "- The shared input proof",
    ),
    (
        "Track Sub-Account Balances Off-Chain",
        "Listen for `OmnibusConfidentialTransfer` events to track sub-account balances off-chain. "
        "The event contains encrypted addresses and amounts for your accounting system.",
    ),
)

_GENERIC_STEPS = (
    ("Setup", "Deploy the contract and prepare encrypted inputs."),
    ("Execute Operations", "Call contract functions with encrypted values and proofs."),
    ("Decrypt Results", "Use the appropriate decryption method to retrieve plaintext values."),
)

_BEST_PRACTICES = (
    "**Always match encryption signer with transaction signer**",
    "**Grant permissions immediately after creating encrypted values**",
    "**Use descriptive variable names** for clarity",
    "**Validate inputs** before performing operations",
)

_SIGNER_MISMATCH = """### ❌ Pitfall: Signer Mismatch

**The Problem:** Using wrong signer for encrypted input.

**Why it fails:** The input proof binds the handle to a specific user address. If the transaction signer doesn't match, verification fails.

**The Fix:** Always match encryption signer with transaction signer:

```typescript
const enc = await fhevm.createEncryptedInput(contractAddress, user.address).encrypt();
await contract.connect(user).initialize(enc.handles[0], enc.inputProof);
```"""

_PITFALL_WHY = "The operation fails due to incorrect usage, permissions, or signer mismatch."
_PITFALL_FIX = "Ensure proper setup, matching signers, and correct permissions."

# Use cases keyed by the dominant operation, then by category label keyword.
_OPERATION_USE_CASES: tuple[tuple[frozenset[str], tuple[str, ...]], ...] = (
    (
        frozenset({"FHE.min", "FHE.max"}),
        (
            "**Confidential Rankings**: Find winners/losers without revealing individual scores",
            "**Privacy-Preserving Auctions**: Determine highest/lowest bid without revealing amounts",
            "**Confidential Comparisons**: Compare encrypted values in business logic",
        ),
    ),
    (
        frozenset({"FHE.add", "FHE.mul"}),
        (
            "**Confidential Accounting**: Sum or multiply encrypted balances",
            "**Privacy-Preserving Analytics**: Aggregate encrypted data points",
            "**Confidential Calculations**: Perform financial computations on encrypted values",
        ),
    ),
    (
        frozenset({"FHE.xor", "FHE.and", "FHE.or"}),
        (
            "**Encrypted Flags**: Set/check boolean flags without revealing state",
            "**Privacy-Preserving Logic**: Perform bitwise operations on encrypted data",
        ),
    ),
    (
        frozenset({"FHE.select"}),
        (
            "**Conditional Transfers**: Transfer based on encrypted conditions",
            "**Privacy-Preserving Branching**: Implement if-then-else logic on encrypted values",
        ),
    ),
)

_LABEL_USE_CASES: dict[str, tuple[str, ...]] = {
    "Encryption": (
        "**Confidential Voting**: Encrypt votes before submission",
        "**Private Auctions**: Encrypt bids to hide amounts",
    ),
    "Decryption": (
        "**Confidential Balances**: Users decrypt their own token balances",
        "**Private Messages**: Users decrypt messages sent to them",
    ),
}

_OMNIBUS_USE_CASES = (
    "**Exchange Custody**: Exchanges can track user balances off-chain while settling on-chain between omnibus accounts",
    "**Custodial Services**: Custodians can manage multiple client accounts privately with encrypted sub-account tracking",
    "**Intermediary Services**: Payment processors can handle transfers between sub-accounts without revealing individual account details",
    "**Privacy-Preserving Ledgers**: Maintain confidential sub-account balances while providing on-chain settlement guarantees",
)

_LATE_LABEL_USE_CASES: dict[str, tuple[str, ...]] = {
    "ERC7984": (
        "**Confidential Tokens**: Privacy-preserving token transfers",
        "**Compliant RWA Tokens**: Real-world asset tokens with compliance features",
    ),
    "Voting": (
        "**Confidential Governance**: Private voting on proposals",
        "**Secret Ballots**: Encrypted votes with public tallies",
    ),
    "Vesting": (
        "**Token Vesting**: Time-locked token releases",
        "**Employee Compensation**: Confidential vesting schedules",
    ),
}

_GENERIC_USE_CASES = (
    "**Confidential Smart Contracts**: Building privacy-preserving applications",
    "**Encrypted Data Processing**: Performing computations on sensitive data",
)


# ---------------------------------------------------------------------------
# DocumentComposer
# ---------------------------------------------------------------------------

class DocumentComposer:
    """Turns extracted facts and a classification into a markdown document."""

    def compose(
        self,
        doc: DocumentInput,
        facts: SourceFacts,
        classification: Classification,
        failures: list[FailureCase],
    ) -> str:
        sections: list[str] = [f"# {doc.title}", ""]
        if doc.chapter:
            sections.append(f"<!-- chapter: {doc.chapter} -->")
            sections.append("")

        sections.extend(_section("Overview", self.overview(doc)))

        learn = self.learn_items(doc, facts, classification)
        if learn:
            sections.extend(_section("What You'll Learn", "\n".join(f"- {item}" for item in learn)))

        concepts = self.concepts(doc, facts, classification)
        if concepts:
            body = "\n\n".join(
                f"### {index}. {title}\n\n{text}" for index, (title, text) in enumerate(concepts, 1)
            )
            sections.extend(_section("Key Concepts", body))

        steps = self.walkthrough(doc, facts, classification)
        body = "\n\n".join(
            f"### Step {index}: {title}\n\n{text}" for index, (title, text) in enumerate(steps, 1)
        )
        sections.extend(_section("Step-by-Step Walkthrough", body))

        pitfalls = self.pitfalls(doc, failures)
        if pitfalls:
            sections.extend(_section("Common Pitfalls", pitfalls))

        sections.extend(
            _section(
                "Best Practices",
                "\n".join(f"{index}. {item}" for index, item in enumerate(_BEST_PRACTICES, 1)),
            )
        )
        sections.extend(
            _section(
                "Real-World Use Cases",
                "\n".join(f"- {item}" for item in self.use_cases(doc, classification)),
            )
        )
        sections.append(self.footer(doc))
        return "\n".join(sections)

    # -- Sections ---------------------------------------------------------

    def overview(self, doc: DocumentInput) -> str:
        """Pick the overview paragraph.

        A curated description naming a specific call is kept verbatim.
        Otherwise a substantial extracted description wins; failing that the
        curated description is extended with a code-derived sentence when the
        sentence adds something new.
        """
        curated = doc.description
        if _SPECIFIC_CALL.search(curated):
            return curated

        extracted = extract_description(doc.source_text)
        if _is_substantial(extracted):
            return extracted

        analysis = describe_code(doc.source_text)
        if not analysis:
            return curated
        curated_lower, analysis_lower = curated.lower(), analysis.lower()
        if analysis_lower[:40] in curated_lower or curated_lower[:40] in analysis_lower:
            return curated
        combined = tidy_sentence(f"{curated} {analysis}")
        return combined if combined.endswith((".", "!", "?")) else combined + "."

    def learn_items(
        self, doc: DocumentInput, facts: SourceFacts, classification: Classification
    ) -> list[str]:
        if classification.kind is DocumentKind.PERMISSIONS_ANTI_PATTERN:
            return list(_ANTI_PATTERN_LEARN)

        items = [
            _learn_item(bullet)
            for bullet in facts.demonstrates
            if len(bullet) > 15 and "complex fhe operations" not in bullet.lower()
        ]
        if len(items) >= 2:
            return items

        operation = classification.operation
        if operation and not any(operation.name in item for item in items):
            items.append(
                f"**{operation.name} operation** - How to perform this specific homomorphic "
                "operation on encrypted values"
            )
        if classification.has(Capability.ENCRYPTION) and not any("encryption" in i for i in items):
            items.append("**Off-chain encryption** - Encrypting values locally before sending to contract")
        if classification.has(Capability.PERMISSIONS) and not any("permission" in i for i in items):
            items.append("**FHE permissions** - Granting permissions for operations and decryption")
        if classification.has(Capability.USER_DECRYPTION) and not any("decrypt" in i for i in items):
            items.append("**User decryption** - Decrypting values you have been granted access to")
        if classification.has(Capability.PUBLIC_DECRYPTION) and not any(
            "public" in i.lower() for i in items
        ):
            items.append("**Public decryption** - Making results decryptable by anyone")
        return items

    def concepts(
        self, doc: DocumentInput, facts: SourceFacts, classification: Classification
    ) -> list[tuple[str, str]]:
        if classification.kind is DocumentKind.PERMISSIONS_ANTI_PATTERN:
            return list(_ANTI_PATTERN_CONCEPTS)

        concepts: list[tuple[str, str]]
        if facts.key_concepts:
            concepts = [(c.title, c.description) for c in facts.key_concepts]
        else:
            concepts = []
            if classification.operation:
                operation = classification.operation
                concepts.append((f"{operation.name} Operation", operation.concept_text()))
            if classification.has(Capability.ENCRYPTION):
                concepts.append(_ENCRYPTION_CONCEPT)
            if classification.has(Capability.PERMISSIONS):
                concepts.append(_PERMISSIONS_CONCEPT)

        if classification.kind is DocumentKind.OMNIBUS:
            concepts.extend(_OMNIBUS_CONCEPTS)
        return concepts

    def walkthrough(
        self, doc: DocumentInput, facts: SourceFacts, classification: Classification
    ) -> list[tuple[str, str]]:
        if classification.kind is DocumentKind.PERMISSIONS_ANTI_PATTERN:
            return list(_ANTI_PATTERN_STEPS)
        if classification.kind is DocumentKind.OMNIBUS:
            return list(_OMNIBUS_STEPS)

        functions = facts.functions
        operation = classification.operation
        if functions and operation:
            compute = next(
                (f for f in functions if any(k in f for k in ("compute", "min", "max", "result"))),
                functions[1] if len(functions) > 1 else "compute",
            )
            steps = [
                (
                    "Set Encrypted Values",
                    f"Encrypt your values off-chain and send them to the contract using `{functions[0]}()`.",
                ),
                (
                    f"Perform {operation.name} Operation",
                    f"Call the function that performs `{operation.name}` (e.g., `{compute}()`).",
                ),
            ]
            if classification.has(Capability.USER_DECRYPTION):
                steps.append(("Decrypt Result", "Use `userDecrypt` to retrieve the plaintext result."))
            elif "publicDecrypt" in doc.test_text:
                steps.append(("Decrypt Result", "Use `publicDecrypt` to retrieve the plaintext result."))
            return steps

        if functions:
            return [
                (f"Call `{name}()`", f"Invoke `{name}()` on the deployed contract.")
                for name in functions
            ]
        return list(_GENERIC_STEPS)

    def pitfalls(self, doc: DocumentInput, failures: list[FailureCase]) -> str:
        if failures:
            blocks = [
                f"### ❌ Pitfall {index}: {case.title}\n\n"
                f"**The Problem:** {case.cause}\n\n"
                f"**Why it fails:** {_PITFALL_WHY}\n\n"
                f"**The Fix:** {_PITFALL_FIX}"
                for index, case in enumerate(failures[:MAX_PITFALLS], 1)
            ]
            return "\n\n".join(blocks)
        if "FHE.fromExternal" in doc.source_text:
            return _SIGNER_MISMATCH
        return ""

    def use_cases(self, doc: DocumentInput, classification: Classification) -> tuple[str, ...]:
        operation = classification.operation
        if operation:
            for names, cases in _OPERATION_USE_CASES:
                if operation.name in names:
                    return cases
        for keyword, cases in _LABEL_USE_CASES.items():
            if keyword in doc.category_label:
                return cases
        if classification.kind is DocumentKind.OMNIBUS:
            return _OMNIBUS_USE_CASES
        for keyword, cases in _LATE_LABEL_USE_CASES.items():
            if keyword in doc.category_label:
                return cases
        return _GENERIC_USE_CASES

    def footer(self, doc: DocumentInput) -> str:
        """Hint block plus the two verbatim code tabs."""
        return (
            '{% hint style="info" %}\n'
            "To run this example correctly, make sure the files are placed in the following directories:\n\n"
            "- `.sol` file → `<your-project-root-dir>/contracts/`\n"
            "- `.ts` file → `<your-project-root-dir>/test/`\n\n"
            "This ensures Hardhat can compile and test your contracts as expected.\n"
            "{% endhint %}\n\n"
            "{% tabs %}\n\n"
            f'{{% tab title="{doc.unit_name}.sol" %}}\n\n'
            f"```solidity\n{doc.source_text}\n```\n\n"
            "{% endtab %}\n\n"
            f'{{% tab title="{doc.test_file_name}" %}}\n\n'
            f"```typescript\n{doc.test_text}\n```\n\n"
            "{% endtab %}\n\n"
            "{% endtabs %}\n"
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _section(heading: str, body: str) -> list[str]:
    return [f"## {heading}", "", body, ""]


def _is_substantial(text: str) -> bool:
    """Long or multi-clause descriptions count."""
    if not text:
        return False
    return (
        len(text) > 80
        or text.count(".") >= 2
        or ("," in text and len(text) > 60)
        or ("and" in text and len(text) > 70)
    )


def _learn_item(bullet: str) -> str:
    """``Bold concept`` - rest, with the first three words as the concept."""
    formatted = bullet[:1].upper() + bullet[1:]
    words = formatted.split()
    if len(words) >= 4:
        return f"**{' '.join(words[:3])}** - {' '.join(words[3:])}"
    if len(words) >= 2:
        return f"**{words[0]}** - {' '.join(words[1:])}"
    return f"**{formatted}**"
