"""Shared fixtures for the settlement tests."""

import pytest
from eth_account import Account

from intent_escrow_sdk.settlement import (
    EscrowParams,
    IntentParams,
    PermitTransferFrom,
    Range,
    SignatureTransferDetails,
    TokenPermissions,
    commit_payee_details,
    commit_string,
    create_permit2_domain,
    create_settlement_domain,
)


# Test wallets (DO NOT use in production)
SELLER_KEY = "0x" + "ab" * 32
RELAYER_KEY = "0x" + "cd" * 32
BUYER_KEY = "0x" + "ef" * 32
SELLER = Account.from_key(SELLER_KEY).address
RELAYER = Account.from_key(RELAYER_KEY).address
BUYER = Account.from_key(BUYER_KEY).address

TOKEN = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"
SETTLER = "0x6cd9000000000000000000000000000000056a60"
CHAIN_ID = 11155111
E18 = 10**18
EXPIRY = 1_900_000_000
NOW = 1_800_000_000


@pytest.fixture
def intent() -> IntentParams:
    return IntentParams(
        token=TOKEN,
        range=Range(min=E18, max=2 * E18),
        expiry_time=EXPIRY,
        currency=commit_string("USD"),
        payment_method=commit_string("wechat"),
        payee_details=commit_payee_details("dust"),
        price=E18,
    )


@pytest.fixture
def escrow(intent) -> EscrowParams:
    return EscrowParams(
        id=1,
        token=TOKEN,
        volume=3 * E18 // 2,
        price=E18,
        usd_rate=E18,
        payer=SELLER,
        seller=SELLER,
        seller_fee_rate=0,
        payment_method=intent.payment_method,
        currency=intent.currency,
        payee_details=intent.payee_details,
        buyer=BUYER,
        buyer_fee_rate=0,
    )


@pytest.fixture
def permit(escrow) -> PermitTransferFrom:
    return PermitTransferFrom(
        permitted=TokenPermissions(token=TOKEN, amount=escrow.volume),
        nonce=7,
        deadline=EXPIRY,
    )


@pytest.fixture
def transfer_details(escrow) -> SignatureTransferDetails:
    return SignatureTransferDetails(to=SETTLER, requested_amount=escrow.volume)


@pytest.fixture
def settlement_domain():
    return create_settlement_domain(SETTLER, CHAIN_ID)


@pytest.fixture
def permit2_domain():
    return create_permit2_domain(CHAIN_ID)
