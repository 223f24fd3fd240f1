"""Protocol constants for the admission checks.

Keep this file aligned with the controller's transaction checks and the
kms/controller service definitions.
"""

# Transaction admission limits
TX_VERSION = 0
ADDRESS_LEN = 21
HASH_LEN = 32
VALUE_LEN = HASH_LEN
CHAIN_ID_LEN = HASH_LEN
MAX_NONCE_LEN = 128
VALID_UNTIL_BLOCK_LIMIT = 80

# Canonical transaction fields
DEFAULT_QUOTA = 300_000
DEFAULT_NONCE = "test"

# Signing identity
CRYPT_TYPE = 1
KEY_DESCRIPTION = "test"

# Height query flag; passed through verbatim
BLOCK_NUMBER_FLAG = False

# Service endpoints
DEFAULT_HOST = "127.0.0.1"
DEFAULT_KMS_PORT = 50005
DEFAULT_CONTROLLER_PORT = 50004

# gRPC method paths
KMS_SERVICE = "kms.KmsService"
GENERATE_KEY_PAIR = f"/{KMS_SERVICE}/GenerateKeyPair"
HASH_DATA = f"/{KMS_SERVICE}/HashData"
SIGN_MESSAGE = f"/{KMS_SERVICE}/SignMessage"

CONTROLLER_SERVICE = "controller.RPCService"
GET_BLOCK_NUMBER = f"/{CONTROLLER_SERVICE}/GetBlockNumber"
SEND_RAW_TRANSACTION = f"/{CONTROLLER_SERVICE}/SendRawTransaction"

HOMEPAGE = "https://github.com/rink1969/cita_ng_tools"
