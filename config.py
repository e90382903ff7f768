"""
Configuration file for the Mixed-Bias Mesh MAC Queue Simulator.
Contains all fixed baseline parameters for the queue, the bias
controller, the tabu search and the grid mesh scenario.
"""

# =============================================================================
# MAC QUEUE PARAMETERS
# =============================================================================

# If a packet arrives when there are already this many packets, it is dropped
MAX_QUEUE_SIZE = 400

# If a packet stays longer than this (seconds) in the queue, it is dropped
MAX_QUEUE_DELAY = 10.0

# =============================================================================
# MIXED BIAS PARAMETERS
# =============================================================================

# Initial operating point of R = 5 * [A / h^B1 + (1-A) / h^B2]
DEFAULT_ALPHA = 0.5
DEFAULT_BETA1 = 2.0
DEFAULT_BETA2 = 5.0

# Bias probability used when the node is one hop from the gateway
ONE_HOP_PROBABILITY = 0.95

# Scale factor applied to the mixed bias sum
BIAS_SCALE = 5.0

# Extra delay (seconds) added to a biased packet
BIAS_DELAY = 0.5

# Distance between neighbouring nodes in meters, used to compute hops
SEPARATION_DISTANCE = 100

# =============================================================================
# TABU SEARCH PARAMETERS
# =============================================================================

# How many delayed packets between tabu moves
PACKET_RESET = 5

# How many tabu moves before there is a chance of reset to the best move
TABU_RESET = 50

# Time in seconds a move stays tabu
TABU_LIFE = 5.0

# Chance of reverting to the best solution once TABU_RESET is exceeded
ASPIRATION_PROBABILITY = 0.5

# Mean delay substituted when no delay has been measured yet
DELAY_PENALTY = 100000.0

# Step sizes and bounds of the candidate moves
ALPHA_STEP = 0.1
ALPHA_UPPER_BOUND = 1.0
BETA_STEP = 0.5
BETA_UPPER_BOUND = 7.5
BETA_RANDOM_RANGE = 10

# Move selection thresholds: up if u <= 0.45, down if u <= 0.9, else random
STEP_UP_THRESHOLD = 0.45
STEP_DOWN_THRESHOLD = 0.9

# Safety ceiling on tabu candidate regeneration
MAX_CANDIDATE_ATTEMPTS = 1000

# =============================================================================
# GRID MESH SCENARIO
# =============================================================================

GRID_X = 7                  # nodes in x-direction
GRID_Y = 7                  # nodes in y-direction
REPEATS = 10                # repeats for statistical purposes
MAX_PACKETS = 100000        # max packets per flow
TOTAL_TIME = 100.0          # max time (s) before simulation terminates
PACKET_INTERVAL = 0.01      # inter-arrival time per flow (s)
PACKET_SIZE = 1024          # bytes

# Flow start times (s), one per source
FLOW_START_TIMES = (2.0, 10.0, 15.0)

# Per-hop link model
HOP_LATENCY = 0.002         # seconds per hop
HOP_LOSS_PROBABILITY = 0.01  # independent loss per hop
SERVICE_TIME = 0.004        # MAC service time per transmission (s)
MAX_RETRIES = 3             # retransmissions before a packet is lost

# =============================================================================
# SIMULATION SETTINGS
# =============================================================================

# Default RNG seed base (actual seed = base + run_id)
RNG_SEED_BASE = 42

# Logging verbosity levels
LOG_LEVEL_DEBUG = 0
LOG_LEVEL_INFO = 1
LOG_LEVEL_WARNING = 2
LOG_LEVEL_ERROR = 3

DEFAULT_LOG_LEVEL = LOG_LEVEL_INFO

# =============================================================================
# OUTPUT PATHS
# =============================================================================

import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
OUTPUT_DIR = os.path.join(DATA_DIR, "output")

# Results CSV filename
RESULTS_CSV = os.path.join(OUTPUT_DIR, "results.csv")

# =============================================================================
# DERIVED PARAMETERS (calculated from fixed parameters)
# =============================================================================

def calculate_max_hops():
    """Hop count from the far grid corner to the gateway at the origin."""
    far_x = (GRID_X - 1) * SEPARATION_DISTANCE
    far_y = (GRID_Y - 1) * SEPARATION_DISTANCE
    return int((far_x ** 2 + far_y ** 2) ** 0.5 / SEPARATION_DISTANCE)

def calculate_static_bias_probability(hops):
    """
    Bias probability for the default static operating point.
    R = 5 * [A / h^B1 + (1-A) / h^B2], R = 0.95 when h == 1
    """
    if hops == 1:
        return ONE_HOP_PROBABILITY
    return BIAS_SCALE * (DEFAULT_ALPHA / hops ** DEFAULT_BETA1 +
                         (1 - DEFAULT_ALPHA) / hops ** DEFAULT_BETA2)


# Print configuration summary
if __name__ == "__main__":
    print("=" * 60)
    print("MIXED BIAS MESH MAC QUEUE - CONFIGURATION")
    print("=" * 60)
    print(f"\nMAC Queue:")
    print(f"  Max Size: {MAX_QUEUE_SIZE} packets")
    print(f"  Max Delay: {MAX_QUEUE_DELAY:.1f} s")

    print(f"\nMixed Bias:")
    print(f"  A={DEFAULT_ALPHA}, B1={DEFAULT_BETA1}, B2={DEFAULT_BETA2}")
    print(f"  Bias Delay: {BIAS_DELAY} s")
    print(f"  Separation Distance: {SEPARATION_DISTANCE} m")

    print(f"\nTabu Search:")
    print(f"  Packet Reset: {PACKET_RESET}")
    print(f"  Tabu Reset: {TABU_RESET}")
    print(f"  Tabu Life: {TABU_LIFE} s")

    print(f"\nScenario:")
    print(f"  Grid: {GRID_X} x {GRID_Y}")
    print(f"  Repeats: {REPEATS}")
    print(f"  Total Time: {TOTAL_TIME} s")

    print(f"\nStatic Bias Probability by Hop Count:")
    for hops in range(1, calculate_max_hops() + 1):
        r = calculate_static_bias_probability(hops)
        print(f"  {hops} hops: R = {r:.4f}")
