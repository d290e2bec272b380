"""Tests for signing requests and signers."""

from unittest.mock import AsyncMock

import pytest

from intent_escrow_sdk.settlement import (
    LocalAccountSigner,
    SignatureUnavailableError,
    build_escrow_signing_request,
    build_intent_signing_request,
    build_permit_witness_signing_request,
    create_direct_settler_domain,
    recover_signer,
    request_signature,
    sign_request,
    verify_signature,
)

from conftest import RELAYER, RELAYER_KEY, SELLER, SELLER_KEY, SETTLER


class TestSigningRequest:
    """Tests for the signer-facing request shape."""

    def test_signer_params_shape(self, intent, settlement_domain):
        """Test that signers receive the unhashed message with stringified integers."""
        params = build_intent_signing_request(intent, settlement_domain).as_signer_params()

        assert params["primaryType"] == "IntentParams"
        assert set(params) == {"domain", "types", "primaryType", "message"}
        assert params["message"]["price"] == str(10**18)
        assert params["message"]["range"] == {"min": str(10**18), "max": str(2 * 10**18)}
        assert params["message"]["currency"].startswith("0x")
        assert "EIP712Domain" not in params["types"]

    def test_full_message_domain_type(self, intent, settlement_domain, permit, permit2_domain):
        """Test that Permit2 requests omit the domain version field."""
        intent_request = build_intent_signing_request(intent, settlement_domain)
        permit_request = build_permit_witness_signing_request(permit, SETTLER, intent, permit2_domain)

        intent_domain_fields = [f["name"] for f in intent_request.as_full_message()["types"]["EIP712Domain"]]
        permit_domain_fields = [f["name"] for f in permit_request.as_full_message()["types"]["EIP712Domain"]]
        assert "version" in intent_domain_fields
        assert "version" not in permit_domain_fields

    def test_permit2_domain(self, permit2_domain):
        """Test the Permit2 domain contents."""
        assert permit2_domain["name"] == "Permit2"
        assert permit2_domain["verifyingContract"] == "0x000000000022D473030F116dDEE9F6B43aC78BA3"
        assert "version" not in permit2_domain

    def test_direct_settler_domain(self, escrow, settlement_domain):
        """Test that the direct-entry domain differs from the execute() domain only by name."""
        direct = create_direct_settler_domain(SETTLER, settlement_domain["chainId"])
        request = build_escrow_signing_request(escrow, direct)

        assert direct["name"] == "MainnetUserTxn"
        assert {k: v for k, v in direct.items() if k != "name"} == {
            k: v for k, v in settlement_domain.items() if k != "name"
        }
        assert request.digest() != build_escrow_signing_request(escrow, settlement_domain).digest()
        assert recover_signer(request, sign_request(RELAYER_KEY, request)) == RELAYER


class TestLocalSigning:
    """Tests for private-key signing and recovery."""

    def test_sign_and_recover(self, intent, settlement_domain):
        """Test that a signature recovers to the signer."""
        request = build_intent_signing_request(intent, settlement_domain)
        signature = sign_request(SELLER_KEY, request)

        assert len(signature) == 65
        assert recover_signer(request, signature) == SELLER
        assert verify_signature(request, signature, SELLER.lower())

    def test_verify_wrong_signer(self, escrow, settlement_domain):
        """Test that verification fails for the wrong signer."""
        request = build_escrow_signing_request(escrow, settlement_domain)
        signature = sign_request(SELLER_KEY, request)

        assert not verify_signature(request, signature, RELAYER)

    def test_verify_garbage_signature(self, escrow, settlement_domain):
        """Test that a malformed signature does not verify."""
        request = build_escrow_signing_request(escrow, settlement_domain)
        assert not verify_signature(request, "0x1234", RELAYER)

    @pytest.mark.asyncio
    async def test_local_account_signer(self, escrow, settlement_domain):
        """Test that LocalAccountSigner signs the stringified params."""
        signer = LocalAccountSigner(RELAYER_KEY[2:])
        request = build_escrow_signing_request(escrow, settlement_domain)

        assert await signer.get_address() == RELAYER
        signature = await request_signature(signer, request)

        assert signature == sign_request(RELAYER_KEY, request)
        assert recover_signer(request, signature) == RELAYER

    @pytest.mark.asyncio
    async def test_local_signer_permit2_domain(self, permit, intent, permit2_domain):
        """Test signing under the version-less Permit2 domain."""
        signer = LocalAccountSigner(SELLER_KEY)
        request = build_permit_witness_signing_request(permit, SETTLER, intent, permit2_domain)

        signature = await request_signature(signer, request)

        assert verify_signature(request, signature, SELLER)


class TestRequestSignature:
    """Tests for external signer failures."""

    @pytest.mark.asyncio
    async def test_signer_failure(self, intent, settlement_domain):
        """Test that signer errors surface as SignatureUnavailableError."""
        signer = AsyncMock()
        signer.sign_typed_data.side_effect = RuntimeError("user rejected")

        with pytest.raises(SignatureUnavailableError, match="user rejected"):
            await request_signature(signer, build_intent_signing_request(intent, settlement_domain))
        signer.sign_typed_data.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_signature(self, intent, settlement_domain):
        """Test that an empty signature is rejected."""
        signer = AsyncMock()
        signer.sign_typed_data.return_value = ""

        with pytest.raises(SignatureUnavailableError, match="no signature"):
            await request_signature(signer, build_intent_signing_request(intent, settlement_domain))

    @pytest.mark.asyncio
    async def test_malformed_signature(self, intent, settlement_domain):
        """Test that a non-hex signature is rejected."""
        signer = AsyncMock()
        signer.sign_typed_data.return_value = "not-a-signature"

        with pytest.raises(SignatureUnavailableError):
            await request_signature(signer, build_intent_signing_request(intent, settlement_domain))
