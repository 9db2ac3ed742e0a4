"""
Built-in modal rules for common developer tools.

Each rule defaults to passive mode: the agent may use the tool and receives
project guidance with every allowed command. Strict mode blocks the tool,
and for some tools its configuration files as well.

Example:
    rules:
      tooling/git: [warn, {mode: strict, message: "Open a PR instead"}]
      cloudflare/wrangler: warn
"""

from veil.rules.base import GeneratedRules, ModalRuleDefinition, ModalRuleOptions
from veil.schema import CliRule, Pattern, RuleAction, RuleCategory, RuleMode, RuleSeverity

# =============================================================================
# Cloudflare Wrangler
# =============================================================================

WRANGLER_CONTEXT = """\
## Cloudflare Wrangler

**Environments:**
- `development`: local development through `wrangler dev`
- `staging`: preview deployments on *.workers.dev
- `production`: live workers

**Guidelines:**
- Test locally with `wrangler dev` before deploying
- Deploy previews with `--env staging`
- Set secrets with `wrangler secret put`, never in wrangler.toml
- Use environment-specific KV bindings, never hardcoded namespace ids"""

WRANGLER_STRICT = """\
Wrangler is blocked by policy.

Workers in this project are deployed through a managed procedure.
Follow the deployment documentation instead of running wrangler directly."""

WRANGLER = ModalRuleDefinition(
    id="cloudflare/wrangler",
    description="Control the Cloudflare Wrangler CLI",
    category=RuleCategory.TOOLING,
    default_severity=RuleSeverity.WARN,
    strict_message=WRANGLER_STRICT,
    default_context=WRANGLER_CONTEXT,
    passive_patterns=[Pattern.regex(r"^wrangler\s")],
    config_file_patterns=[Pattern.regex(r"wrangler\.toml$")],
)

# =============================================================================
# Docker
# =============================================================================

DOCKER_CONTEXT = """\
## Docker

**Common commands:**
- `docker build`: build images, prefer multi-stage builds
- `docker compose up`: start the service stack
- `docker logs`: inspect container output

**Guidelines:**
- Pin image tags, never rely on `latest` in production
- Do not run processes as root inside containers
- Keep secrets out of images with .dockerignore"""

DOCKER_STRICT = """\
Docker is blocked by policy.

Containers are managed by the infrastructure team.
Use the project's development scripts instead."""

DOCKER = ModalRuleDefinition(
    id="container/docker",
    description="Control the Docker CLI",
    category=RuleCategory.TOOLING,
    default_severity=RuleSeverity.WARN,
    strict_message=DOCKER_STRICT,
    default_context=DOCKER_CONTEXT,
    passive_patterns=[Pattern.regex(r"^docker\s")],
    strict_patterns=[Pattern.regex(r"^docker\s"), Pattern.regex(r"^docker-compose\s")],
    config_file_patterns=[
        Pattern.regex(r"Dockerfile$"),
        Pattern.regex(r"docker-compose\.ya?ml$"),
    ],
)

# =============================================================================
# Terraform
# =============================================================================

TERRAFORM_CONTEXT = """\
## Terraform

**Workspaces:**
- `default`: development
- `staging`: staging
- `production`: requires approval

**Guidelines:**
- Always run `terraform plan` and review it before `apply`
- State lives in the remote backend, never commit .tfstate files
- Tag every resource"""

TERRAFORM_STRICT = """\
Terraform is blocked by policy.

Infrastructure changes go through the GitOps pipeline.
Open a pull request against the infrastructure repository."""

TERRAFORM = ModalRuleDefinition(
    id="infra/terraform",
    description="Control the Terraform CLI",
    category=RuleCategory.TOOLING,
    default_severity=RuleSeverity.WARN,
    strict_message=TERRAFORM_STRICT,
    default_context=TERRAFORM_CONTEXT,
    passive_patterns=[Pattern.regex(r"^terraform\s")],
    config_file_patterns=[Pattern.regex(r"\.tf$"), Pattern.regex(r"\.tfvars$")],
)

# =============================================================================
# Kubernetes
# =============================================================================

KUBECTL_CONTEXT = """\
## Kubernetes

**Clusters:**
- `dev-cluster`: development
- `staging-cluster`: staging
- `prod-cluster`: production, read-only for most users

**Guidelines:**
- Inspect with `kubectl get` and `kubectl describe`
- Use `--dry-run=client` before applying changes
- Prefer declarative manifests over imperative commands"""

KUBECTL_STRICT = """\
kubectl is blocked by policy.

Cluster changes are applied through GitOps.
Submit changes through the deployment repository."""

KUBECTL = ModalRuleDefinition(
    id="infra/kubectl",
    description="Control the kubectl CLI",
    category=RuleCategory.TOOLING,
    default_severity=RuleSeverity.WARN,
    strict_message=KUBECTL_STRICT,
    default_context=KUBECTL_CONTEXT,
    passive_patterns=[Pattern.regex(r"^kubectl\s")],
)

# =============================================================================
# AWS CLI
# =============================================================================

AWS_CONTEXT = """\
## AWS CLI

**Profiles:**
- `default`: development account
- `staging`: staging account
- `production`: restricted

**Guidelines:**
- Always pass --profile explicitly
- Check the active identity with `aws sts get-caller-identity`
- Use --dry-run where the command supports it"""

AWS_STRICT = """\
The AWS CLI is blocked by policy.

AWS operations run through approved automation.
Use the provided scripts or CI pipelines."""

AWS_CLI = ModalRuleDefinition(
    id="cloud/aws-cli",
    description="Control the AWS CLI",
    category=RuleCategory.TOOLING,
    default_severity=RuleSeverity.WARN,
    strict_message=AWS_STRICT,
    default_context=AWS_CONTEXT,
    passive_patterns=[Pattern.regex(r"^aws\s")],
)

# =============================================================================
# npm / pnpm / yarn
# =============================================================================

NPM_CONTEXT = """\
## Package manager

**Scripts:**
- `npm run dev`: development server
- `npm run build`: production build
- `npm run test`: test suite

**Guidelines:**
- Read package.json scripts before running them
- Use `npm ci` in CI
- Pin exact versions for production dependencies"""

NPM_STRICT = """\
Installing or removing packages is blocked by policy.

Dependency changes need review. Propose them in a pull request."""

NPM = ModalRuleDefinition(
    id="tooling/npm",
    description="Control npm, pnpm and yarn",
    category=RuleCategory.TOOLING,
    default_severity=RuleSeverity.WARN,
    strict_message=NPM_STRICT,
    default_context=NPM_CONTEXT,
    passive_patterns=[Pattern.regex(r"^(npm|pnpm|yarn)\s")],
    strict_patterns=[Pattern.regex(r"^(npm|pnpm|yarn)\s+(install|add|remove)")],
)

# =============================================================================
# git
# =============================================================================

GIT_CONTEXT = """\
## Git

**Branches:**
- `main`: protected production branch
- `develop`: integration branch
- `feature/*`: work branches

**Guidelines:**
- Branch from develop and open a pull request for review
- Keep commits small with meaningful messages
- Never force push to protected branches"""

GIT_STRICT = """\
git push is blocked by policy.

Use the pull request workflow."""

GIT = ModalRuleDefinition(
    id="tooling/git",
    description="Control git operations",
    category=RuleCategory.TOOLING,
    default_severity=RuleSeverity.WARN,
    strict_message=GIT_STRICT,
    default_context=GIT_CONTEXT,
    passive_patterns=[Pattern.regex(r"^git\s")],
    strict_patterns=[Pattern.regex(r"^git\s+push")],
    extra_strict_rules=[
        CliRule(
            pattern=Pattern.regex(r"^git\s+push.*--force"),
            action=RuleAction.DENY,
            reason="Force push is not allowed",
        ),
    ],
)

# =============================================================================
# Lookup
# =============================================================================

MODAL_RULES: tuple[ModalRuleDefinition, ...] = (
    WRANGLER,
    DOCKER,
    TERRAFORM,
    KUBECTL,
    AWS_CLI,
    NPM,
    GIT,
)

_BY_ID = {rule.id: rule for rule in MODAL_RULES}


def resolve_modal_rule(
    definition: ModalRuleDefinition,
    mode: RuleMode | None = None,
    options: ModalRuleOptions | None = None,
) -> GeneratedRules:
    """
    Expand a modal rule into concrete rules.

    An explicit mode wins over the definition's default mode.
    """
    return definition.generate(mode, options)


def default_context(rule_id: str) -> str | None:
    """The built-in passive mode guidance for a modal rule id."""
    rule = _BY_ID.get(rule_id)
    return rule.default_context if rule else None


def default_strict_message(rule_id: str) -> str | None:
    """The built-in strict mode message for a modal rule id."""
    rule = _BY_ID.get(rule_id)
    return rule.strict_message if rule else None
