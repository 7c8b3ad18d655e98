import logging
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Blockchain
RPC_URL = os.getenv('RPC_URL', 'https://zetachain-athens-evm.blockpi.network/v1/rpc/public')
CHAIN_ID = int(os.getenv('CHAIN_ID', '7001'))  # ZetaChain Athens testnet
FARM_TREASURY_ADDRESS = os.getenv('FARM_TREASURY_ADDRESS', '')
SIGNER_PRIVATE_KEY = os.getenv('SIGNER_PRIVATE_KEY', '')

EIP712_DOMAIN_NAME = 'ZetaFarmTreasury'
EIP712_DOMAIN_VERSION = '1'

# Listener
LISTENER_POLL_SECONDS = int(os.getenv('LISTENER_POLL_SECONDS', '5'))
LISTENER_START_BLOCK = os.getenv('LISTENER_START_BLOCK', 'latest')

# HTTP
API_HOST = os.getenv('API_HOST', '0.0.0.0')
API_PORT = int(os.getenv('API_PORT', '8000'))

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

# Game rules
PLOT_COUNT = 18
NEW_USER_COINS = 1000
NEW_USER_BACKPACK = {'seed_0': 1}
OFFLINE_EARNINGS_MAX_HOURS = 24
PEST_PROBABILITY = 0.004  # per second
PROTECT_DURATION = 24 * 60 * 60
LETTER_DROP_PROBABILITY = 0.5
CHECKIN_ACTION_COINS = 50
CHECKIN_ACTION_TICKETS = 1
MAX_DRAWS_PER_ACTION = 10

# Calculator modes. The first value of each pair is the current rule set,
# the second one is kept for replaying older saves.
PAUSE_MODE = os.getenv('PAUSE_MODE', 'merge')                   # merge | single_window
GROW_TIME_MODE = os.getenv('GROW_TIME_MODE', 'cumulative')      # cumulative | sum
PEST_MODE = os.getenv('PEST_MODE', 'probabilistic')             # probabilistic | protection_window

_logging_configured = False


def configure_logging(level=None):
    """Install the root handler once for the entry point scripts"""
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    _logging_configured = True
