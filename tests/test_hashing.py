"""Tests for commitments, type hashes, struct hashes and digests."""

from decimal import Decimal

import pytest
from eth_account.messages import encode_typed_data
from eth_utils import keccak

from intent_escrow_sdk.settlement import (
    EscrowParams,
    InputValidationError,
    IntentParams,
    PayeeAccountEscrowParams,
    Range,
    TokenPermissions,
    build_escrow_signing_request,
    build_intent_signing_request,
    build_permit_single_signing_request,
    build_permit_transfer_signing_request,
    build_permit_witness_signing_request,
    commit_payee_details,
    commit_string,
    create_direct_settler_domain,
    create_settlement_domain,
    domain_separator,
    format_units,
    hash_escrow,
    hash_intent,
    hash_range,
    hash_token_permissions,
    hex32,
    parse_ether,
    parse_units,
    typed_data_digest,
)
from intent_escrow_sdk.settlement.types import (
    EIP712_DOMAIN_TYPE,
    ESCROW_PARAMS_TYPES,
    INTENT_PARAMS_TYPES,
    PAYEE_ACCOUNT_ESCROW_PARAMS_TYPES,
    PERMIT_SINGLE_TYPES,
    PERMIT_TRANSFER_FROM_TYPES,
    PERMIT_WITNESS_TRANSFER_FROM_TYPES,
    PermitDetails,
    PermitSingle,
)
from intent_escrow_sdk.settlement import typehashes
from intent_escrow_sdk.settlement.typehashes import encode_type

from conftest import BUYER, CHAIN_ID, E18, EXPIRY, SELLER, SETTLER, TOKEN


class TestCommitments:
    """Tests for string and payee-detail commitments."""

    def test_usd(self):
        """Test the USD currency commitment literal."""
        assert commit_string("USD").hex() == (
            "c4ae21aac0c6549d71dd96035b7e0bdb6c79ebdba8891b666115bc976d16a29e"
        )

    def test_wechat_hashes_six_ascii_bytes(self):
        """Test that wechat commits to exactly its 6 ASCII bytes."""
        assert commit_string("wechat") == keccak(bytes([0x77, 0x65, 0x63, 0x68, 0x61, 0x74]))
        assert commit_string("wechat").hex() == (
            "a87f59463aa7edfb0cc3cc39e28ba98c83fda1a3b5c6c9d10219c02669eb8a19"
        )

    def test_empty_string(self):
        """Test that the empty string is a valid commitment."""
        assert commit_string("").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_payee_details_is_packed(self):
        """Test that payee details hash the raw concatenation."""
        assert commit_payee_details("dust", "Q", "m") == keccak(b"dustQm")
        assert commit_payee_details("dust") == commit_string("dust")

    def test_payee_details_boundaries_collide_like_encode_packed(self):
        """Test that packed commitments ignore part boundaries, as abi.encodePacked does."""
        assert commit_payee_details("dust", "Q", "m") == commit_payee_details("dustQ", "", "m")

    def test_payee_details_order_sensitive(self):
        """Test that the order of parts changes the commitment."""
        assert commit_payee_details("dust", "Q", "m") != commit_payee_details("Q", "dust", "m")
        assert commit_payee_details("dust", "m", "Q") != commit_payee_details("dust", "Q", "m")

    def test_hex32(self):
        """Test hex rendering."""
        assert hex32(commit_string("USD")).startswith("0xc4ae21aa")
        assert len(hex32(commit_string("USD"))) == 66


class TestTypeHashes:
    """Tests for the type string registry."""

    @pytest.mark.parametrize(
        "primary,types,literal",
        [
            ("IntentParams", INTENT_PARAMS_TYPES, typehashes.INTENT_PARAMS_TYPE_STRING),
            ("EscrowParams", ESCROW_PARAMS_TYPES, typehashes.ESCROW_PARAMS_TYPE_STRING),
            (
                "EscrowParams",
                PAYEE_ACCOUNT_ESCROW_PARAMS_TYPES,
                typehashes.PAYEE_ACCOUNT_ESCROW_PARAMS_TYPE_STRING,
            ),
            (
                "PermitWitnessTransferFrom",
                PERMIT_WITNESS_TRANSFER_FROM_TYPES,
                typehashes.PERMIT_WITNESS_TRANSFER_FROM_TYPE_STRING,
            ),
            (
                "PermitTransferFrom",
                PERMIT_TRANSFER_FROM_TYPES,
                typehashes.PERMIT_TRANSFER_FROM_TYPE_STRING,
            ),
            ("PermitSingle", PERMIT_SINGLE_TYPES, typehashes.PERMIT_SINGLE_TYPE_STRING),
            ("EIP712Domain", {"EIP712Domain": EIP712_DOMAIN_TYPE}, typehashes.EIP712_DOMAIN_TYPE_STRING),
        ],
    )
    def test_literal_matches_signer_type_map(self, primary, types, literal):
        """Test that each literal equals the string derived from the type map signers receive."""
        assert encode_type(primary, types) == literal

    def test_pinned_type_hashes(self):
        """Test type hashes against known values."""
        assert typehashes.RANGE_TYPEHASH.hex() == (
            "5b4bbb4092e326a2ac5b48dd5073ef77b1585550d85f3d9ca3735dd68219ca0a"
        )
        assert typehashes.INTENT_PARAMS_TYPEHASH.hex() == (
            "e35cc11984dd6904f5b9762f229612ac92ee9d76da86ddbf67e239c201098d86"
        )
        assert typehashes.ESCROW_PARAMS_TYPEHASH.hex() == (
            "ed97e829ed8e7013968c84de7001fedaa46875e0844f8baf807325af378b55eb"
        )
        assert typehashes.TOKEN_PERMISSIONS_TYPEHASH.hex() == (
            "618358ac3db8dc274f0cd8829da7e234bd48cd73c4a740aede1adec9846d06a1"
        )
        assert typehashes.EIP712_DOMAIN_TYPEHASH.hex() == (
            "8b73c3c69bb8fe3d512ecc4cf759cc79239f7b179b0ffacaa9a75d522b39400f"
        )

    def test_escrow_shapes_have_distinct_type_hashes(self):
        """Test that both escrow shapes keep their own type hash."""
        assert typehashes.ESCROW_PARAMS_TYPEHASH != typehashes.PAYEE_ACCOUNT_ESCROW_PARAMS_TYPEHASH

    def test_type_hash_is_deterministic(self):
        """Test that hashing a type string twice gives the same result."""
        assert typehashes.type_hash(typehashes.RANGE_TYPE_STRING) == typehashes.RANGE_TYPEHASH


class TestStructHashes:
    """Tests for struct hashes and digests."""

    def test_end_to_end_intent_digest(self, intent):
        """Test the cross-implementation conformance vector."""
        assert hash_range(intent.range).hex() == (
            "5c6d5fce6357bca2139f8493cb1017dbd6abfdcb6ca671a5364d2e187310a0cb"
        )
        assert hash_intent(intent).hex() == (
            "6d89ec2364530a83c42c776d72eab76b6f6a585c8057557c596d50292a1cf68d"
        )
        separator = domain_separator("MainnetTakeIntent", CHAIN_ID, SETTLER, "1")
        assert separator.hex() == (
            "b34f76483cb3e70a08f1a44971903f96cdd161a698421c426f79d3849b640d8c"
        )
        assert typed_data_digest(separator, hash_intent(intent)).hex() == (
            "7143e0fdedecf782e2a8a59372e0d2a84049460384dcd1c9edbcc4d5b53c07ac"
        )

    def test_signing_request_digest_matches(self, intent, settlement_domain):
        """Test that the signing request yields the conformance digest."""
        request = build_intent_signing_request(intent, settlement_domain)
        assert request.digest().hex() == (
            "7143e0fdedecf782e2a8a59372e0d2a84049460384dcd1c9edbcc4d5b53c07ac"
        )

    def test_token_permissions_hash(self):
        """Test the TokenPermissions struct hash."""
        assert hash_token_permissions(TokenPermissions(TOKEN, 1_000_000)).hex() == (
            "08e4c1bab2351ea2af2afc9527733ba1d902fbc6ee0f8d5ecf77c4170035b5b1"
        )

    def test_hash_independent_of_construction(self, intent):
        """Test that equal field values hash equally."""
        rebuilt = IntentParams(
            token=TOKEN.lower(),
            range=Range(max=2 * E18, min=E18),
            expiry_time=EXPIRY,
            currency="0x" + intent.currency.hex(),
            payment_method=intent.payment_method,
            payee_details=intent.payee_details,
            price=E18,
        )
        hash_range(rebuilt.range)
        assert hash_intent(rebuilt) == hash_intent(intent)

    def test_domain_changes_digest_not_struct_hash(self, intent):
        """Test domain separator sensitivity."""
        struct_hash = hash_intent(intent)
        base = typed_data_digest(
            domain_separator("MainnetTakeIntent", CHAIN_ID, SETTLER, "1"), struct_hash
        )
        other_chain = typed_data_digest(
            domain_separator("MainnetTakeIntent", 1, SETTLER, "1"), struct_hash
        )
        other_contract = typed_data_digest(
            domain_separator("MainnetTakeIntent", CHAIN_ID, TOKEN, "1"), struct_hash
        )
        assert len({base, other_chain, other_contract}) == 3
        assert hash_intent(intent) == struct_hash

    def test_escrow_shapes_hash_differently(self, escrow):
        """Test that the payee-account shape is not confused with the payer shape."""
        payee_account = PayeeAccountEscrowParams(
            id=escrow.id,
            token=escrow.token,
            volume=escrow.volume,
            price=escrow.price,
            usd_rate=escrow.usd_rate,
            seller=escrow.seller,
            seller_fee_rate=0,
            payment_method=escrow.payment_method,
            currency=escrow.currency,
            payee_id=commit_string("id"),
            payee_account=escrow.payee_details,
            buyer=escrow.buyer,
            buyer_fee_rate=0,
        )
        assert hash_escrow(escrow) != hash_escrow(payee_account)

    def test_digest_rejects_short_inputs(self):
        """Test that a digest needs 32-byte inputs."""
        with pytest.raises(InputValidationError):
            typed_data_digest(b"\x00" * 31, b"\x00" * 32)


class TestEthAccountConformance:
    """Cross-check against eth_account's EIP-712 implementation."""

    def _check(self, request):
        signable = encode_typed_data(full_message=request.as_full_message())
        assert bytes(signable.header) == request.domain_separator
        assert bytes(signable.body) == request.struct_hash

    def test_intent(self, intent, settlement_domain):
        self._check(build_intent_signing_request(intent, settlement_domain))

    def test_escrow(self, escrow, settlement_domain):
        self._check(build_escrow_signing_request(escrow, settlement_domain))

    def test_witness_permit(self, permit, intent, permit2_domain):
        self._check(build_permit_witness_signing_request(permit, SETTLER, intent, permit2_domain))

    def test_plain_permit(self, permit, permit2_domain):
        self._check(build_permit_transfer_signing_request(permit, SETTLER, permit2_domain))

    def test_permit_single(self, permit2_domain):
        permit = PermitSingle(
            details=PermitDetails(token=TOKEN, amount=2**160 - 1, expiration=EXPIRY, nonce=0),
            spender=SETTLER,
            sig_deadline=EXPIRY,
        )
        self._check(build_permit_single_signing_request(permit, permit2_domain))

    def test_payee_account_escrow_direct_domain(self, escrow):
        payee_account = PayeeAccountEscrowParams(
            id=2, token=TOKEN, volume=escrow.volume, price=E18, usd_rate=E18, seller=SELLER,
            seller_fee_rate=0, payment_method=escrow.payment_method, currency=escrow.currency,
            payee_id=escrow.payee_details, payee_account=escrow.payee_details, buyer=BUYER,
            buyer_fee_rate=0,
        )
        self._check(
            build_escrow_signing_request(
                payee_account, create_direct_settler_domain(SETTLER, CHAIN_ID)
            )
        )


class TestValidation:
    """Tests for constructor validation."""

    def test_invalid_address(self, intent):
        """Test that invalid address raises error."""
        with pytest.raises(ValueError, match="Invalid intent.token"):
            IntentParams(
                token="invalid",
                range=intent.range,
                expiry_time=EXPIRY,
                currency=intent.currency,
                payment_method=intent.payment_method,
                payee_details=intent.payee_details,
                price=E18,
            )

    def test_uint64_overflow(self, intent):
        """Test that expiry must fit in uint64."""
        with pytest.raises(InputValidationError, match="does not fit in uint64"):
            IntentParams(
                token=TOKEN,
                range=intent.range,
                expiry_time=2**64,
                currency=intent.currency,
                payment_method=intent.payment_method,
                payee_details=intent.payee_details,
                price=E18,
            )

    def test_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(InputValidationError):
            Range(min=-1, max=E18)

    def test_bool_is_not_an_integer(self):
        """Test that booleans are not accepted as integers."""
        with pytest.raises(InputValidationError, match="not an integer"):
            TokenPermissions(token=TOKEN, amount=True)

    def test_bytes32_length(self, escrow):
        """Test that bytes32 fields must be exactly 32 bytes."""
        with pytest.raises(InputValidationError, match="expected 32 bytes"):
            EscrowParams(
                id=1,
                token=TOKEN,
                volume=E18,
                price=E18,
                usd_rate=E18,
                payer=SELLER,
                seller=SELLER,
                seller_fee_rate=0,
                payment_method="0x1234",
                currency=escrow.currency,
                payee_details=escrow.payee_details,
                buyer=BUYER,
                buyer_fee_rate=0,
            )

    def test_malformed_hex(self, intent):
        """Test that non-hex strings are rejected."""
        with pytest.raises(InputValidationError):
            IntentParams(
                token=TOKEN,
                range=intent.range,
                expiry_time=EXPIRY,
                currency="0xzz" + "00" * 31,
                payment_method=intent.payment_method,
                payee_details=intent.payee_details,
                price=E18,
            )

    def test_nested_range_type(self, intent):
        """Test that the range must be a Range."""
        with pytest.raises(InputValidationError, match="expected a Range"):
            IntentParams(
                token=TOKEN,
                range=(E18, 2 * E18),
                expiry_time=EXPIRY,
                currency=intent.currency,
                payment_method=intent.payment_method,
                payee_details=intent.payee_details,
                price=E18,
            )

    def test_addresses_are_checksummed(self):
        """Test that addresses are normalised."""
        assert TokenPermissions(token=TOKEN.lower(), amount=1).token == TOKEN

    def test_domain_rejects_bad_settler(self):
        """Test that the settlement domain validates its contract."""
        with pytest.raises(InputValidationError):
            create_settlement_domain("0x1234", CHAIN_ID)


class TestUnits:
    """Tests for unit helpers."""

    def test_parse_units(self):
        assert parse_units("1.5", 6) == 1_500_000
        assert parse_units(2, 18) == 2 * E18
        assert parse_units(Decimal("0.000001"), 6) == 1

    def test_parse_units_too_many_decimals(self):
        with pytest.raises(InputValidationError, match="more than 6 decimals"):
            parse_units("0.0000001", 6)

    def test_parse_units_rejects_negative(self):
        with pytest.raises(InputValidationError):
            parse_units("-1", 6)

    def test_parse_units_rejects_garbage(self):
        with pytest.raises(InputValidationError):
            parse_units("abc", 6)

    def test_parse_ether(self):
        assert parse_ether("1") == E18

    def test_format_units(self):
        assert format_units(1_500_000, 6) == "1.5"
        assert format_units(2 * E18, 18) == "2"
        assert format_units(0, 6) == "0"
