"""Create a hidden-parameter limit order and prepare a fill.

A maker sells 5 WETH for 17,500 USDC publicly, but will only accept fills
at or above a secret price of 3,200 USDC/WETH and a secret minimum amount.
The thresholds stay private; only a Groth16 proof lands in the order.

Prerequisites:
1. pip install hidden-orders-sdk
2. npm install -g snarkjs
3. Set environment variables (see below)

Environment:
    MAKER_PRIVATE_KEY                 Maker wallet (never commit this)
    HIDDEN_ORDERS_PREDICATE_ADDRESS   Deployed predicate verifier
    HIDDEN_ORDERS_WASM_PATH           Circuit witness generator
    HIDDEN_ORDERS_ZKEY_PATH           Groth16 proving key
    TAKER_ADDRESS                     Address used for the fill preview (optional)

Usage:
    python create_hidden_order.py
"""

import asyncio
import os
from dotenv import load_dotenv

load_dotenv()

WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


async def main():
    from hidden_orders_sdk import format_units, load_config_from_env
    from hidden_orders_sdk.order import (
        LifecycleController,
        LocalAccountSigner,
        OrderAssembler,
        OrderParams,
        TakerConfig,
        debug_order,
        generate_order_id,
        prepare_fill_arguments,
        taker_summary,
    )
    from hidden_orders_sdk.zk import SecretParameters, SnarkjsProvingBackend, generate_nonce

    required = [
        "MAKER_PRIVATE_KEY",
        "HIDDEN_ORDERS_PREDICATE_ADDRESS",
        "HIDDEN_ORDERS_WASM_PATH",
        "HIDDEN_ORDERS_ZKEY_PATH",
    ]
    missing = [var for var in required if not os.environ.get(var)]
    if missing:
        print(f"Missing required environment variables: {', '.join(missing)}")
        return

    config = load_config_from_env()
    signer = LocalAccountSigner(os.environ["MAKER_PRIVATE_KEY"])
    maker = await signer.get_address()

    print("=" * 60)
    print("  HIDDEN-PARAMETER LIMIT ORDER")
    print("=" * 60)

    assembler = OrderAssembler(
        {
            "chain_id": config.chain_id,
            "predicate_address": config.predicate_address,
            "acknowledge_truncated_commitment": config.acknowledge_truncated_commitment,
        },
        proving_backend=SnarkjsProvingBackend(config.wasm_path, config.zkey_path),
    )

    params = OrderParams(
        maker=maker,
        maker_asset=WETH,
        taker_asset=USDC,
        making_amount=5 * 10**18,
        taking_amount=17_500 * 10**6,
    )
    secret = SecretParameters(
        secret_price=3_200 * 10**6,
        secret_amount=2 * 10**18,
        nonce=generate_nonce(),
    )

    print("\nGenerating proof (this can take a few seconds)...")
    result = await assembler.build(params, secret)
    for warning in result.warnings:
        print(f"  warning: {warning}")
    if not result.success:
        print(f"Build failed: {'; '.join(result.errors)}")
        return

    print(debug_order(result.order))

    controller = LifecycleController({"chain_id": config.chain_id})
    lifecycle = await controller.process(result.order, signer)
    print(f"\nStatus: {lifecycle.status.value}")
    if lifecycle.validation.errors:
        print(f"Errors: {'; '.join(lifecycle.validation.errors)}")
        return

    order_id = generate_order_id(
        config.chain_id, maker, result.order.zk_metadata.commitment, result.order.order.salt
    )
    print(f"Order ID: {order_id}")

    # Taker-side preview of a half fill
    taker = TakerConfig(taker_address=os.environ.get("TAKER_ADDRESS", maker))
    summary = taker_summary(lifecycle, taker)
    print(f"\nTaker recommendation: {summary['recommendation']} ({summary['reasoning']})")

    fill = prepare_fill_arguments(lifecycle, taker, params.making_amount // 2)
    print(f"Fill amount: {format_units(fill.fill_amount)} WETH")
    print(f"Gas limit:   {fill.gas_limit}")
    print(f"Calldata:    0x{fill.calldata.hex()[:74]}...")


if __name__ == "__main__":
    asyncio.run(main())
