# Band-limiting filter
DEFAULT_LOWPASS_CUTOFF_HZ = 4000.0
DEFAULT_LOWPASS_Q = 1.0

# Echo branch
DEFAULT_ECHO_DELAY_SECONDS = 0.02
MAX_ECHO_DELAY_SECONDS = 0.1
DEFAULT_ECHO_MIX = 0.1

# Dynamics compressor
DEFAULT_COMPRESSOR_THRESHOLD_DB = -24.0
DEFAULT_COMPRESSOR_KNEE_DB = 30.0
DEFAULT_COMPRESSOR_RATIO = 12.0
DEFAULT_COMPRESSOR_ATTACK_SECONDS = 0.003
DEFAULT_COMPRESSOR_RELEASE_SECONDS = 0.25

DEFAULT_OUTPUT_GAIN = 0.95

# Pitch/rate shift: rate = base + uniform(-jitter, +jitter)
PLAYBACK_RATE_BASE = 0.98
PLAYBACK_RATE_JITTER = 0.02

# Compressed re-encode
CAPTURE_SLACK_SECONDS = 0.2
CAPTURE_TIMESLICE_SECONDS = 0.1
# Part of the budget reserved for the worker to stop and close the recorder
CAPTURE_STOP_GRACE_SECONDS = 0.1
PREFERRED_COMPRESSED_TYPES = (
    "audio/webm",
    "audio/webm;codecs=opus",
    "audio/ogg;codecs=opus",
)

WAV_MIME_TYPE = "audio/wav"
DEFAULT_RECORDED_MIME_TYPE = "audio/webm"

# Same ceiling the upload endpoint enforces (10 MB)
MAX_INPUT_BYTES = 10 * 1024 * 1024

# Environment switches, read at call time.
# VOICE_ANON_COMPRESSED_ENCODE=0 forces every processed result to WAV.
# VOICE_ANON_REALTIME_CAPTURE=1 paces the capture session against the wall clock.
COMPRESSED_ENCODE_ENV = "VOICE_ANON_COMPRESSED_ENCODE"
REALTIME_CAPTURE_ENV = "VOICE_ANON_REALTIME_CAPTURE"
COMPRESSED_ENCODE_DEFAULT = True
REALTIME_CAPTURE_DEFAULT = False
