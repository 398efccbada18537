"""Key names of the layers-model topology format."""

# Path from the topology root to the layer list
LAYERS_PATH = ('model_config', 'config', 'layers')

# Artifact keys (model.json)
MODEL_TOPOLOGY_KEY = 'modelTopology'
WEIGHTS_MANIFEST_KEY = 'weightsManifest'

# Layer descriptor keys
LAYER_CONFIG_KEY = 'config'
INBOUND_NODES_KEY = 'inbound_nodes'

# Shape key written by the newer exporter and the key the runtime expects
MODERN_SHAPE_KEY = 'batch_shape'
LEGACY_SHAPE_KEY = 'batchInputShape'

# Data type
DTYPE_KEY = 'dtype'
DTYPE_NAME_PATH = ('config', 'name')
DEFAULT_DTYPE = 'float32'

# Modern call node
NODE_ARGS_KEY = 'args'
ARG_HISTORY_PATH = ('config', 'keras_history')

# Nested descriptors
MODULE_TAG = 'module'
MODERN_CLASS_NAME_TAG = 'class_name'
LEGACY_CLASS_NAME_TAG = 'className'
DESCRIPTOR_CONFIG_KEY = 'config'

NESTED_DESCRIPTOR_KEYS = (
    'kernel_initializer',
    'bias_initializer',
    'kernel_regularizer',
    'bias_regularizer',
    'activity_regularizer',
    'kernel_constraint',
    'bias_constraint',
)
