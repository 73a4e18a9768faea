"""
Enumeration types for the dependency graph engine.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class NodeType(str, Enum):
    """
    IaC construct kinds that can appear as graph nodes.

    Covers Terraform blocks, Kubernetes objects, Helm artifacts and
    Terragrunt configuration units.
    """

    # Terraform
    TERRAFORM_RESOURCE = "terraform_resource"
    TERRAFORM_DATA = "terraform_data"
    TERRAFORM_MODULE = "terraform_module"
    TERRAFORM_VARIABLE = "terraform_variable"
    TERRAFORM_OUTPUT = "terraform_output"
    TERRAFORM_LOCAL = "terraform_local"
    TERRAFORM_PROVIDER = "terraform_provider"

    # Kubernetes
    K8S_DEPLOYMENT = "k8s_deployment"
    K8S_SERVICE = "k8s_service"
    K8S_CONFIGMAP = "k8s_configmap"
    K8S_SECRET = "k8s_secret"
    K8S_INGRESS = "k8s_ingress"
    K8S_POD = "k8s_pod"
    K8S_STATEFULSET = "k8s_statefulset"
    K8S_DAEMONSET = "k8s_daemonset"
    K8S_JOB = "k8s_job"
    K8S_CRONJOB = "k8s_cronjob"
    K8S_NAMESPACE = "k8s_namespace"
    K8S_SERVICEACCOUNT = "k8s_serviceaccount"
    K8S_ROLE = "k8s_role"
    K8S_ROLEBINDING = "k8s_rolebinding"
    K8S_CLUSTERROLE = "k8s_clusterrole"
    K8S_CLUSTERROLEBINDING = "k8s_clusterrolebinding"
    K8S_PERSISTENTVOLUME = "k8s_persistentvolume"
    K8S_PERSISTENTVOLUMECLAIM = "k8s_persistentvolumeclaim"
    K8S_STORAGECLASS = "k8s_storageclass"
    K8S_NETWORKPOLICY = "k8s_networkpolicy"

    # Helm
    HELM_CHART = "helm_chart"
    HELM_RELEASE = "helm_release"
    HELM_VALUE = "helm_value"

    # Terragrunt
    TG_CONFIG = "tg_config"
    TG_INCLUDE = "tg_include"
    TG_DEPENDENCY = "tg_dependency"

    @property
    def family(self) -> str:
        """Tool family prefix: terraform, k8s, helm or tg."""
        return self.value.split("_", 1)[0]


class EdgeType(str, Enum):
    """Dependency relationship kinds between two nodes."""

    # Resource dependencies
    DEPENDS_ON = "depends_on"
    REFERENCES = "references"
    CREATES = "creates"
    DESTROYS = "destroys"

    # Module dependencies
    MODULE_CALL = "module_call"
    MODULE_SOURCE = "module_source"
    MODULE_PROVIDER = "module_provider"

    # Variable/output flow
    INPUT_VARIABLE = "input_variable"
    OUTPUT_VALUE = "output_value"
    LOCAL_REFERENCE = "local_reference"

    # Providers
    PROVIDER_CONFIG = "provider_config"
    PROVIDER_ALIAS = "provider_alias"

    # Data sources
    DATA_SOURCE = "data_source"
    DATA_REFERENCE = "data_reference"

    # Kubernetes
    SELECTOR_MATCH = "selector_match"
    NAMESPACE_MEMBER = "namespace_member"
    VOLUME_MOUNT = "volume_mount"
    SERVICE_TARGET = "service_target"
    INGRESS_BACKEND = "ingress_backend"
    RBAC_BINDING = "rbac_binding"
    CONFIGMAP_REF = "configmap_ref"
    SECRET_REF = "secret_ref"

    # Terragrunt
    TG_INCLUDES = "tg_includes"
    TG_DEPENDS_ON = "tg_depends_on"
    TG_PASSES_INPUT = "tg_passes_input"
    TG_SOURCES = "tg_sources"


class EvidenceCategory(str, Enum):
    """
    Evidence categories, ordered roughly by how much they can be trusted.

    ``syntax`` evidence is weighted like ``semantic`` evidence during scoring.
    """

    EXPLICIT = "explicit"
    SYNTAX = "syntax"
    SEMANTIC = "semantic"
    STRUCTURAL = "structural"
    HEURISTIC = "heuristic"


class EvidenceType(str, Enum):
    """Kinds of evidence a parser can emit to justify an edge."""

    # Syntax
    EXPLICIT_REFERENCE = "explicit_reference"
    DEPENDS_ON_DIRECTIVE = "depends_on_directive"
    MODULE_SOURCE = "module_source"
    PROVIDER_ALIAS = "provider_alias"
    VARIABLE_DEFAULT = "variable_default"

    # Semantic
    INTERPOLATION = "interpolation"
    FUNCTION_CALL = "function_call"
    FOR_EXPRESSION = "for_expression"
    CONDITIONAL = "conditional"
    SPLAT_OPERATION = "splat_operation"

    # Structural
    BLOCK_NESTING = "block_nesting"
    ATTRIBUTE_ASSIGNMENT = "attribute_assignment"
    LABEL_MATCHING = "label_matching"
    NAMESPACE_SCOPING = "namespace_scoping"

    # Heuristic
    NAMING_CONVENTION = "naming_convention"
    RESOURCE_PROXIMITY = "resource_proximity"
    TYPE_COMPATIBILITY = "type_compatibility"
    ANNOTATION_HINT = "annotation_hint"
    DOCUMENTATION_HINT = "documentation_hint"

    @property
    def default_category(self) -> EvidenceCategory:
        return _DEFAULT_CATEGORIES[self]


_DEFAULT_CATEGORIES: dict[EvidenceType, EvidenceCategory] = {
    EvidenceType.EXPLICIT_REFERENCE: EvidenceCategory.SYNTAX,
    EvidenceType.DEPENDS_ON_DIRECTIVE: EvidenceCategory.SYNTAX,
    EvidenceType.MODULE_SOURCE: EvidenceCategory.SYNTAX,
    EvidenceType.PROVIDER_ALIAS: EvidenceCategory.SYNTAX,
    EvidenceType.VARIABLE_DEFAULT: EvidenceCategory.SYNTAX,
    EvidenceType.INTERPOLATION: EvidenceCategory.SEMANTIC,
    EvidenceType.FUNCTION_CALL: EvidenceCategory.SEMANTIC,
    EvidenceType.FOR_EXPRESSION: EvidenceCategory.SEMANTIC,
    EvidenceType.CONDITIONAL: EvidenceCategory.SEMANTIC,
    EvidenceType.SPLAT_OPERATION: EvidenceCategory.SEMANTIC,
    EvidenceType.BLOCK_NESTING: EvidenceCategory.STRUCTURAL,
    EvidenceType.ATTRIBUTE_ASSIGNMENT: EvidenceCategory.STRUCTURAL,
    EvidenceType.LABEL_MATCHING: EvidenceCategory.STRUCTURAL,
    EvidenceType.NAMESPACE_SCOPING: EvidenceCategory.STRUCTURAL,
    EvidenceType.NAMING_CONVENTION: EvidenceCategory.HEURISTIC,
    EvidenceType.RESOURCE_PROXIMITY: EvidenceCategory.HEURISTIC,
    EvidenceType.TYPE_COMPATIBILITY: EvidenceCategory.HEURISTIC,
    EvidenceType.ANNOTATION_HINT: EvidenceCategory.HEURISTIC,
    EvidenceType.DOCUMENTATION_HINT: EvidenceCategory.HEURISTIC,
}


class EvidenceMethod(str, Enum):
    """How a piece of evidence was collected."""

    AST_ANALYSIS = "ast_analysis"
    REGEX_MATCH = "regex_match"
    SEMANTIC_ANALYSIS = "semantic_analysis"
    HEURISTIC_INFERENCE = "heuristic_inference"
    MANUAL = "manual"


class ConfidenceLevel(str, Enum):
    """
    Five-level classification of a 0-100 confidence score.

    Thresholds: certain >= 95, high >= 80, medium >= 60, low >= 40,
    otherwise uncertain.
    """

    CERTAIN = "certain"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNCERTAIN = "uncertain"


class ConditionOperator(str, Enum):
    """Comparison operators available to scoring rule conditions."""

    EQUALS = "equals"
    CONTAINS = "contains"
    MATCHES = "matches"
    GT = "gt"
    LT = "lt"
    EXISTS = "exists"


class RiskLevel(str, Enum):
    """Aggregate blast radius risk classification."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class MatchingStrategy(str, Enum):
    """Strategy that merged nodes across repositories during a rollup."""

    ARN = "arn"
    RESOURCE_ID = "resource_id"
    NAME = "name"
    TAG = "tag"
