"""Constants for the Tyk Secret Certificate Operator."""

# Watched core resource
SECRET_GROUP = ""
SECRET_VERSION = "v1"
SECRET_PLURAL = "secrets"
KIND_SECRET = "Secret"
TLS_SECRET_TYPE = "kubernetes.io/tls"

# Secret data keys
TLS_KEY = "tls.key"
TLS_CRT = "tls.crt"

# Tyk API Group
API_GROUP = "tyk.tyk.io"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_API_DEFINITION = "ApiDefinition"
PLURAL_API_DEFINITION = "apidefinitions"

# Finalizers
FINALIZER = "finalizers.tyk.io/certs"

# Field Manager
FIELD_MANAGER = "tyk-cert-operator"
CONTROLLER_NAME = "tyk-cert-operator"

# Tyk modes
TYK_MODE_CE = "ce"
TYK_MODE_PRO = "pro"

# Retry delay after a failed deletion pass
DELETE_RETRY_DELAY_SECONDS = 5.0

# Event Reasons
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_CERTIFICATE_UPLOADED = "CertificateUploaded"
EVENT_REASON_CERTIFICATE_DELETED = "CertificateDeleted"
EVENT_REASON_API_DEFINITION_UPDATED = "ApiDefinitionUpdated"
