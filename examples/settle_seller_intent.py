"""Seller Intent Settlement Example.

This example settles a seller intent through the settler's execute() entry
point. The seller signs a Permit2 witness transfer carrying the intent, the
relayer attests the escrow, and the buyer submits the settlement.

Prerequisites:
1. pip install intent-escrow-sdk[examples]
2. Set environment variables (see below)
3. The seller must have approved Permit2 for the token

Environment:
    RPC_URL, SETTLER_ADDRESS, TOKEN_ADDRESS,
    SELLER_PRIVATE_KEY, RELAYER_PRIVATE_KEY, BUYER_PRIVATE_KEY

Usage:
    python settle_seller_intent.py
"""

import asyncio
import logging
import os
import random
import time

from dotenv import load_dotenv

load_dotenv()


async def main():
    from intent_escrow_sdk.client import JsonRpcChainClient, SettlerClient
    from intent_escrow_sdk.settlement import (
        EscrowParams,
        IntentParams,
        LocalAccountSigner,
        PermitTransferFrom,
        Range,
        SignatureTransferDetails,
        TokenPermissions,
        WitnessPermit,
        commit_payee_details,
        commit_string,
        format_units,
        parse_ether,
        parse_units,
    )

    required = [
        "RPC_URL",
        "SETTLER_ADDRESS",
        "TOKEN_ADDRESS",
        "SELLER_PRIVATE_KEY",
        "RELAYER_PRIVATE_KEY",
        "BUYER_PRIVATE_KEY",
    ]
    missing = [var for var in required if not os.environ.get(var)]
    if missing:
        print(f"Missing required environment variables: {', '.join(missing)}")
        return

    logging.basicConfig(level=logging.INFO)

    settler_address = os.environ["SETTLER_ADDRESS"]
    token = os.environ["TOKEN_ADDRESS"]
    decimals = int(os.environ.get("TOKEN_DECIMALS", "18"))

    seller = LocalAccountSigner(os.environ["SELLER_PRIVATE_KEY"])
    relayer = LocalAccountSigner(os.environ["RELAYER_PRIVATE_KEY"])
    seller_address = await seller.get_address()

    print("=" * 60)
    print("  SELLER INTENT SETTLEMENT")
    print("=" * 60)

    chain = JsonRpcChainClient(
        os.environ["RPC_URL"], private_key=os.environ["BUYER_PRIVATE_KEY"]
    )
    client = SettlerClient(chain, {"settler_address": settler_address})

    try:
        volume = parse_units("1.5", decimals)
        deadline = int(time.time()) + 3600

        intent = IntentParams(
            token=token,
            range=Range(min=parse_units("1", decimals), max=parse_units("2", decimals)),
            expiry_time=deadline,
            currency=commit_string("USD"),
            payment_method=commit_string("wechat"),
            payee_details=commit_payee_details("seller-wechat-id"),
            price=parse_ether("1"),
        )
        escrow = EscrowParams(
            id=random.getrandbits(64),
            token=token,
            volume=volume,
            price=intent.price,
            usd_rate=parse_ether("1"),
            payer=seller_address,
            seller=seller_address,
            seller_fee_rate=0,
            payment_method=intent.payment_method,
            currency=intent.currency,
            payee_details=intent.payee_details,
            buyer=chain.address,
            buyer_fee_rate=0,
        )
        transfer = WitnessPermit(
            permit=PermitTransferFrom(
                permitted=TokenPermissions(token=token, amount=volume),
                nonce=random.getrandbits(48),
                deadline=deadline,
            ),
            transfer=SignatureTransferDetails(to=settler_address, requested_amount=volume),
        )

        print("\n[1] Building settlement...")
        builder = await client.builder(intent, escrow, transfer)
        print(f"    Chain ID: {builder.settlement_domain['chainId']}")
        print(f"    Volume:   {format_units(volume, decimals)}")

        print("\n[2] Collecting signatures...")
        builder = await client.collect_signatures(builder, relayer=relayer, maker=seller)

        payload = builder.build(strict=True)
        print(f"\n[3] Payload: {len(payload.actions)} actions, {len(payload.calldata)} bytes")

        print("\n[4] Submitting...")
        result = await client.submit(payload)
        if result.error is not None:
            print(f"    Reverted: {result.error.describe()}")
            print(f"    Hint: {result.error.remediation}")
        else:
            print(f"    Mined in block {result.receipt.block_number} (status {result.receipt.status})")

    finally:
        await chain.aclose()


if __name__ == "__main__":
    asyncio.run(main())
