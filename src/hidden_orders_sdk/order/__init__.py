"""Hidden-parameter limit orders for the 1inch limit order protocol.

Key components:
- Salt Codec: binds the commitment and the extension hash into the order salt
- Predicate Composer: ``gt(0, arbitraryStaticCall(verifier, predicate(proof)))``
- Order Assembler: builds orders from public params, secret thresholds and a proof
- Lifecycle Controller: created -> signed -> validated -> ready_to_fill
- Taker Evaluator: pre-fill checks, fill calldata and gas comparison

Example usage:
    ```python
    from hidden_orders_sdk.order import (
        OrderAssembler,
        LifecycleController,
        LocalAccountSigner,
        OrderParams,
    )
    from hidden_orders_sdk.zk import SecretParameters, SnarkjsProvingBackend, generate_nonce

    config = {"chain_id": 1, "predicate_address": "0x..."}
    assembler = OrderAssembler(config, SnarkjsProvingBackend(wasm_path, zkey_path))

    result = await assembler.build(
        OrderParams(
            maker="0x...",
            maker_asset=WETH,
            taker_asset=USDC,
            making_amount=5 * 10**18,
            taking_amount=17_500 * 10**6,
        ),
        SecretParameters(
            secret_price=3_200_000_000,  # 3200 USDC per WETH, scaled by 1e18
            secret_amount=2 * 10**18,
            nonce=generate_nonce(),
        ),
    )

    lifecycle = await LifecycleController(config).process(
        result.order, LocalAccountSigner("0x...")
    )
    print(lifecycle.status)  # LifecycleStatus.READY_TO_FILL
    ```
"""

from .types import (
    OrderParams,
    Order,
    ExtensionData,
    PackedSaltData,
    ZKMetadata,
    ZKEnabledOrder,
    OrderSignature,
    LifecycleStatus,
    OrderLifecycle,
    FillArgs,
    FillPreparation,
    TakerIssue,
    ORDER_TYPES,
)
from .utils import (
    HAS_EXTENSION_FLAG,
    EXTENSION_FIELDS,
    build_maker_traits,
    decode_maker_traits,
    build_order_extension,
    decode_order_extension,
    get_extension_predicate,
    calculate_offered_price,
)
from .salt import (
    COMMITMENT_BITS,
    EXTENSION_HASH_BITS,
    pack,
    unpack,
    truncate_commitment,
    validate_extension_hash,
    validate_salt_structure,
    verify_round_trip,
    compute_extension_hash,
    extension_hash_from_hex,
    create_from_extension_bytes,
    format_packed_salt,
)
from .predicates import (
    arbitrary_static_call,
    gt,
    gt_zero,
    lt,
    eq,
    not_,
    join_static_calls,
    join_and,
    join_or,
    validate_proof_data,
    estimate_zk_extension_gas,
    build_zk_extension,
    build_combined_extension,
    debug_extension,
)
from .builder import (
    BuildResult,
    OrderAssembler,
    validate_order_params,
    validate_consistency,
    assert_consistent,
    summarize_order,
    debug_order,
)
from .signing import (
    create_eip712_domain,
    build_order_typed_data,
    compute_order_hash,
    split_signature,
    sign_order,
    sign_order_with_signer,
    verify_order_signature,
    is_well_formed_signature,
    LocalAccountSigner,
    TypedDataSigner,
)
from .lifecycle import LifecycleController, estimate_lifecycle_gas
from .fill import TakerTraits, build_taker_traits, encode_fill_order_args
from .taker import (
    TakerConfig,
    TakerValidationResult,
    CanFillResult,
    FillParameterValidation,
    PreparedFill,
    GasComparison,
    validate_for_taker,
    can_fill,
    validate_fill_parameters,
    prepare_fill_arguments,
    estimate_fill_gas,
    taker_summary,
)
from .order_id import generate_order_id, verify_order_id

__all__ = [
    # Types
    "OrderParams",
    "Order",
    "ExtensionData",
    "PackedSaltData",
    "ZKMetadata",
    "ZKEnabledOrder",
    "OrderSignature",
    "LifecycleStatus",
    "OrderLifecycle",
    "FillArgs",
    "FillPreparation",
    "TakerIssue",
    "ORDER_TYPES",
    # Traits and extension layout
    "HAS_EXTENSION_FLAG",
    "EXTENSION_FIELDS",
    "build_maker_traits",
    "decode_maker_traits",
    "build_order_extension",
    "decode_order_extension",
    "get_extension_predicate",
    "calculate_offered_price",
    # Salt
    "COMMITMENT_BITS",
    "EXTENSION_HASH_BITS",
    "pack",
    "unpack",
    "truncate_commitment",
    "validate_extension_hash",
    "validate_salt_structure",
    "verify_round_trip",
    "compute_extension_hash",
    "extension_hash_from_hex",
    "create_from_extension_bytes",
    "format_packed_salt",
    # Predicates
    "arbitrary_static_call",
    "gt",
    "gt_zero",
    "lt",
    "eq",
    "not_",
    "join_static_calls",
    "join_and",
    "join_or",
    "validate_proof_data",
    "estimate_zk_extension_gas",
    "build_zk_extension",
    "build_combined_extension",
    "debug_extension",
    # Builder
    "BuildResult",
    "OrderAssembler",
    "validate_order_params",
    "validate_consistency",
    "assert_consistent",
    "summarize_order",
    "debug_order",
    # Signing
    "create_eip712_domain",
    "build_order_typed_data",
    "compute_order_hash",
    "split_signature",
    "sign_order",
    "sign_order_with_signer",
    "verify_order_signature",
    "is_well_formed_signature",
    "LocalAccountSigner",
    "TypedDataSigner",
    # Lifecycle
    "LifecycleController",
    "estimate_lifecycle_gas",
    # Fill
    "TakerTraits",
    "build_taker_traits",
    "encode_fill_order_args",
    # Taker
    "TakerConfig",
    "TakerValidationResult",
    "CanFillResult",
    "FillParameterValidation",
    "PreparedFill",
    "GasComparison",
    "validate_for_taker",
    "can_fill",
    "validate_fill_parameters",
    "prepare_fill_arguments",
    "estimate_fill_gas",
    "taker_summary",
    # Order ID
    "generate_order_id",
    "verify_order_id",
]
