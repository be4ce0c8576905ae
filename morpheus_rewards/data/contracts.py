"""Minimal ABIs for the Morpheus capital and MOR token reads."""

# ---------------------------------------------------------------------------
# Contract display names (used in diagnostics)
# ---------------------------------------------------------------------------
REWARD_POOL_V2_NAME = "RewardPoolV2"
DISTRIBUTOR_V2_NAME = "DistributorV2"
DEPOSIT_POOL_NAME = "DepositPool"
MOR_TOKEN_NAME = "MOR"

# Capital rewards use reward pool index 0
CAPITAL_REWARD_POOL_INDEX = 0

# ---------------------------------------------------------------------------
# Minimal ABIs: only the functions we call
# ---------------------------------------------------------------------------

REWARD_POOL_V2_ABI = [
    {
        "inputs": [
            {"name": "index_", "type": "uint256"},
            {"name": "startTime_", "type": "uint128"},
            {"name": "endTime_", "type": "uint128"},
        ],
        "name": "getPeriodRewards",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

DISTRIBUTOR_V2_ABI = [
    {
        "inputs": [],
        "name": "undistributedRewards",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "rewardPoolIndex", "type": "uint256"},
            {"name": "depositPoolAddress", "type": "address"},
        ],
        "name": "depositPools",
        "outputs": [
            {"name": "token", "type": "address"},
            {"name": "chainLinkPath", "type": "string"},
            {"name": "tokenPrice", "type": "uint256"},
            {"name": "deposited", "type": "uint256"},
            {"name": "lastUnderlyingBalance", "type": "uint256"},
            {"name": "strategy", "type": "uint8"},
            {"name": "aToken", "type": "address"},
            {"name": "isExist", "type": "bool"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

DEPOSIT_POOL_ABI = [
    {
        "inputs": [
            {"name": "rewardPoolIndex_", "type": "uint256"},
            {"name": "claimLockStart_", "type": "uint128"},
            {"name": "claimLockEnd_", "type": "uint128"},
        ],
        "name": "getClaimLockPeriodMultiplier",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "totalDepositedInPublicPools",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

ERC20_ABI = [
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

_SEND_PARAM_COMPONENTS = [
    {"name": "dstEid", "type": "uint32"},
    {"name": "to", "type": "bytes32"},
    {"name": "amountLD", "type": "uint256"},
    {"name": "minAmountLD", "type": "uint256"},
    {"name": "extraOptions", "type": "bytes"},
    {"name": "composeMsg", "type": "bytes"},
    {"name": "oftCmd", "type": "bytes"},
]

_MESSAGING_FEE_COMPONENTS = [
    {"name": "nativeFee", "type": "uint256"},
    {"name": "lzTokenFee", "type": "uint256"},
]

# LayerZero OFT (MOR20)
OFT_ABI = ERC20_ABI + [
    {
        "inputs": [
            {"name": "_sendParam", "type": "tuple", "components": _SEND_PARAM_COMPONENTS},
            {"name": "_payInLzToken", "type": "bool"},
        ],
        "name": "quoteSend",
        "outputs": [
            {
                "name": "msgFee",
                "type": "tuple",
                "components": _MESSAGING_FEE_COMPONENTS,
            },
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_sendParam", "type": "tuple", "components": _SEND_PARAM_COMPONENTS},
            {"name": "_fee", "type": "tuple", "components": _MESSAGING_FEE_COMPONENTS},
            {"name": "_refundAddress", "type": "address"},
        ],
        "name": "send",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
]
