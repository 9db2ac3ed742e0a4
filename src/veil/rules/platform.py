"""
Built-in static rules, per platform.

Windows, macOS and Linux tables guard against destructive commands and hide
system credential stores. The cross-platform table masks cloud credentials
in the environment, hides secret files and noisy directories, and blocks
common credential leaks on the command line.
"""

from veil.rules.base import RuleDefinition
from veil.schema import (
    CliRule,
    EnvRule,
    FileRule,
    Pattern,
    Platform,
    RuleAction,
    RuleCategory,
    RuleSeverity,
)

ERROR = RuleSeverity.ERROR
WARN = RuleSeverity.WARN


def _deny_cli(
    source: str,
    reason: str,
    alternatives: list[str] | None = None,
    ignore_case: bool = False,
) -> CliRule:
    return CliRule(
        pattern=Pattern.regex(source, ignore_case=ignore_case),
        action=RuleAction.DENY,
        reason=reason,
        safe_alternatives=alternatives,
    )


def _deny_file(pattern: str | Pattern, reason: str) -> FileRule:
    return FileRule(pattern=pattern, action=RuleAction.DENY, reason=reason)


def _env(source: str, action: RuleAction, reason: str, ignore_case: bool = False) -> EnvRule:
    return EnvRule(
        pattern=Pattern.regex(source, ignore_case=ignore_case),
        action=action,
        reason=reason,
    )


def _rx(source: str, ignore_case: bool = False) -> Pattern:
    return Pattern.regex(source, ignore_case=ignore_case)


# =============================================================================
# Windows
# =============================================================================

_WIN = [Platform.WINDOWS]
_UNINSTALL = ["Use Windows Settings to uninstall programs"]

WINDOWS_RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        id="win/no-delete-system32",
        description="Prevent deletion of System32",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_WIN,
        default_severity=ERROR,
        cli_rules=[
            _deny_cli(r"del.*\\Windows\\System32", "Cannot delete System32", _UNINSTALL, True),
            _deny_cli(r"rmdir.*\\Windows\\System32", "Cannot delete System32", ignore_case=True),
            _deny_cli(r"rd\s+/s.*\\Windows\\System32", "Cannot delete System32", ignore_case=True),
        ],
    ),
    RuleDefinition(
        id="win/no-delete-windows",
        description="Prevent deletion of the Windows directory",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_WIN,
        default_severity=ERROR,
        cli_rules=[
            _deny_cli(r"del.*C:\\Windows", "Cannot delete Windows directory", ignore_case=True),
            _deny_cli(r"rmdir.*C:\\Windows", "Cannot delete Windows directory", ignore_case=True),
        ],
    ),
    RuleDefinition(
        id="win/no-delete-program-files",
        description="Prevent recursive deletion of Program Files",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_WIN,
        default_severity=ERROR,
        cli_rules=[
            _deny_cli(
                r"del\s+/s.*Program Files",
                "Cannot recursively delete Program Files",
                _UNINSTALL,
                True,
            ),
            _deny_cli(
                r"rd\s+/s.*Program Files",
                "Cannot recursively delete Program Files",
                ignore_case=True,
            ),
        ],
    ),
    RuleDefinition(
        id="win/no-format-drive",
        description="Prevent formatting drives",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_WIN,
        default_severity=ERROR,
        cli_rules=[_deny_cli(r"format\s+[A-Z]:", "Cannot format drives", ignore_case=True)],
    ),
    RuleDefinition(
        id="win/no-delete-above-cwd",
        description="Prevent deletion outside the current directory",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_WIN,
        default_severity=WARN,
        cli_rules=[
            _deny_cli(
                r"del.*\.\.\\",
                "Cannot delete files above current directory",
                ["Navigate to target directory first"],
                True,
            ),
            _deny_cli(
                r"rmdir.*\.\.\\",
                "Cannot delete directories above current directory",
                ignore_case=True,
            ),
        ],
    ),
    RuleDefinition(
        id="win/no-modify-registry",
        description="Prevent registry modifications",
        category=RuleCategory.SYSTEM,
        platforms=_WIN,
        default_severity=WARN,
        cli_rules=[
            _deny_cli(
                r"reg\s+(add|delete|import)",
                "Registry modifications blocked",
                ["Use Windows Settings or proper installers"],
                True,
            ),
        ],
    ),
    RuleDefinition(
        id="win/hide-ntuser",
        description="Hide the NTUSER.DAT user profile",
        category=RuleCategory.PRIVACY,
        platforms=_WIN,
        default_severity=ERROR,
        file_rules=[_deny_file(_rx(r"NTUSER\.DAT", True), "User profile contains sensitive data")],
    ),
    RuleDefinition(
        id="win/hide-sam",
        description="Hide the Security Account Manager database",
        category=RuleCategory.SECURITY,
        platforms=_WIN,
        default_severity=ERROR,
        file_rules=[
            _deny_file(_rx(r"\\Windows\\System32\\config\\SAM", True), "Contains password hashes"),
        ],
    ),
    RuleDefinition(
        id="win/hide-credential-manager",
        description="Hide Windows Credential Manager files",
        category=RuleCategory.CREDENTIALS,
        platforms=_WIN,
        default_severity=ERROR,
        file_rules=[
            _deny_file(_rx(r"\\Microsoft\\Credentials", True), "Windows Credential Manager"),
            _deny_file(_rx(r"\\Microsoft\\Protect", True), "DPAPI master keys"),
        ],
    ),
)

# =============================================================================
# macOS
# =============================================================================

_MAC = [Platform.DARWIN]

DARWIN_RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        id="darwin/no-delete-system",
        description="Prevent deletion of /System",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_MAC,
        default_severity=ERROR,
        cli_rules=[
            _deny_cli(r"rm\s+-rf?\s+/System", "Cannot delete System directory"),
            _deny_cli(r"sudo\s+rm.*/System", "Cannot delete System directory"),
        ],
    ),
    RuleDefinition(
        id="darwin/no-delete-library",
        description="Prevent deletion of /Library",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_MAC,
        default_severity=ERROR,
        cli_rules=[_deny_cli(r"rm\s+-rf?\s+/Library", "Cannot delete Library directory")],
    ),
    RuleDefinition(
        id="darwin/no-delete-applications",
        description="Prevent recursive deletion of /Applications",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_MAC,
        default_severity=WARN,
        cli_rules=[
            _deny_cli(
                r"rm\s+-rf?\s+/Applications",
                "Cannot recursively delete Applications",
                ["Drag individual apps to Trash"],
            ),
        ],
    ),
    RuleDefinition(
        id="darwin/no-delete-above-cwd",
        description="Prevent rm -rf above the current directory",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_MAC,
        default_severity=WARN,
        cli_rules=[
            _deny_cli(
                r"rm\s+-rf?\s+\.\./",
                "Cannot delete above current directory",
                ["cd to parent directory first"],
            ),
        ],
    ),
    RuleDefinition(
        id="darwin/hide-keychain",
        description="Hide Keychain files",
        category=RuleCategory.CREDENTIALS,
        platforms=_MAC,
        default_severity=ERROR,
        file_rules=[
            _deny_file(_rx(r"\.keychain(-db)?$"), "Keychain contains passwords"),
            _deny_file(_rx(r"/Keychains/"), "Keychain directory"),
        ],
    ),
    RuleDefinition(
        id="darwin/no-security-dump",
        description="Prevent dumping the keychain with the security command",
        category=RuleCategory.CREDENTIALS,
        platforms=_MAC,
        default_severity=ERROR,
        cli_rules=[
            _deny_cli(
                r"security\s+(dump-keychain|find-.*-password)",
                "Cannot dump keychain credentials",
            ),
        ],
    ),
    RuleDefinition(
        id="darwin/hide-ssh",
        description="Hide SSH keys and config",
        category=RuleCategory.CREDENTIALS,
        platforms=_MAC,
        default_severity=ERROR,
        file_rules=[_deny_file(_rx(r"/\.ssh/"), "SSH keys and config")],
    ),
    RuleDefinition(
        id="darwin/no-disable-sip",
        description="Prevent disabling System Integrity Protection",
        category=RuleCategory.SYSTEM,
        platforms=_MAC,
        default_severity=ERROR,
        cli_rules=[_deny_cli(r"csrutil\s+disable", "Cannot disable SIP")],
    ),
)

# =============================================================================
# Linux
# =============================================================================

_LINUX = [Platform.LINUX]

LINUX_RULES: tuple[RuleDefinition, ...] = (
    RuleDefinition(
        id="linux/no-delete-root",
        description="Prevent rm -rf /",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_LINUX,
        default_severity=ERROR,
        cli_rules=[
            _deny_cli(r"rm\s+-rf?\s+/\s*$", "Cannot delete root filesystem"),
            _deny_cli(r"rm\s+--no-preserve-root", "Cannot bypass root protection"),
        ],
    ),
    RuleDefinition(
        id="linux/no-delete-boot",
        description="Prevent deletion of /boot",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_LINUX,
        default_severity=ERROR,
        cli_rules=[_deny_cli(r"rm\s+-rf?\s+/boot", "Cannot delete boot partition")],
    ),
    RuleDefinition(
        id="linux/no-delete-etc",
        description="Prevent recursive deletion of /etc",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_LINUX,
        default_severity=ERROR,
        cli_rules=[_deny_cli(r"rm\s+-rf?\s+/etc", "Cannot delete system configuration")],
    ),
    RuleDefinition(
        id="linux/no-delete-var",
        description="Prevent recursive deletion of /var",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_LINUX,
        default_severity=WARN,
        cli_rules=[_deny_cli(r"rm\s+-rf?\s+/var", "Cannot delete /var")],
    ),
    RuleDefinition(
        id="linux/no-delete-above-cwd",
        description="Prevent rm -rf above the current directory",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_LINUX,
        default_severity=WARN,
        cli_rules=[
            _deny_cli(
                r"rm\s+-rf?\s+\.\./",
                "Cannot delete above current directory",
                ["cd to parent directory first"],
            ),
        ],
    ),
    RuleDefinition(
        id="linux/no-delete-home-recursive",
        description="Prevent rm -rf on an entire home directory",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_LINUX,
        default_severity=ERROR,
        cli_rules=[
            _deny_cli(
                r"rm\s+-rf?\s+(/home/\w+\s*$|~\s*$)",
                "Cannot delete entire home directory",
                ["Delete specific files/folders instead"],
            ),
        ],
    ),
    RuleDefinition(
        id="linux/no-dd-to-disk",
        description="Prevent dd writing to raw disks",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_LINUX,
        default_severity=ERROR,
        cli_rules=[
            _deny_cli(r"dd.*of=/dev/sd[a-z]\b", "Cannot write directly to disk"),
            _deny_cli(r"dd.*of=/dev/nvme", "Cannot write directly to NVMe"),
        ],
    ),
    RuleDefinition(
        id="linux/no-mkfs",
        description="Prevent filesystem formatting",
        category=RuleCategory.DESTRUCTIVE,
        platforms=_LINUX,
        default_severity=ERROR,
        cli_rules=[_deny_cli(r"mkfs\.", "Cannot format filesystems")],
    ),
    RuleDefinition(
        id="linux/hide-shadow",
        description="Hide /etc/shadow and /etc/gshadow",
        category=RuleCategory.CREDENTIALS,
        platforms=_LINUX,
        default_severity=ERROR,
        file_rules=[
            _deny_file(_rx(r"/etc/shadow"), "Password hashes"),
            _deny_file(_rx(r"/etc/gshadow"), "Group password hashes"),
        ],
    ),
    RuleDefinition(
        id="linux/hide-ssh",
        description="Hide SSH keys and config",
        category=RuleCategory.CREDENTIALS,
        platforms=_LINUX,
        default_severity=ERROR,
        file_rules=[_deny_file(_rx(r"/\.ssh/"), "SSH keys and config")],
    ),
    RuleDefinition(
        id="linux/hide-gnupg",
        description="Hide the GnuPG directory",
        category=RuleCategory.CREDENTIALS,
        platforms=_LINUX,
        default_severity=ERROR,
        file_rules=[_deny_file(_rx(r"/\.gnupg/"), "GPG keys")],
    ),
    RuleDefinition(
        id="linux/no-fork-bomb",
        description="Prevent fork bomb execution",
        category=RuleCategory.SYSTEM,
        platforms=_LINUX,
        default_severity=ERROR,
        cli_rules=[
            _deny_cli(r":\(\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;?\s*:", "Fork bomb detected"),
        ],
    ),
    RuleDefinition(
        id="linux/no-chmod-777-recursive",
        description="Prevent recursive chmod 777",
        category=RuleCategory.SECURITY,
        platforms=_LINUX,
        default_severity=WARN,
        cli_rules=[
            _deny_cli(
                r"chmod\s+-R\s+777",
                "Insecure recursive permissions",
                ["chmod 755 for directories", "chmod 644 for files"],
            ),
        ],
    ),
)

# =============================================================================
# Cross-platform
# =============================================================================

MASK = RuleAction.MASK
DENY = RuleAction.DENY

CROSS_PLATFORM_RULES: tuple[RuleDefinition, ...] = (
    # Environment credentials
    RuleDefinition(
        id="env/mask-aws",
        description="Mask AWS credentials in the environment",
        category=RuleCategory.CREDENTIALS,
        env_rules=[_env(r"^AWS_", MASK, "AWS credentials")],
    ),
    RuleDefinition(
        id="env/mask-azure",
        description="Mask Azure credentials in the environment",
        category=RuleCategory.CREDENTIALS,
        env_rules=[_env(r"^AZURE_", MASK, "Azure credentials")],
    ),
    RuleDefinition(
        id="env/mask-gcp",
        description="Mask Google Cloud credentials in the environment",
        category=RuleCategory.CREDENTIALS,
        env_rules=[_env(r"^GCP_|^GOOGLE_", MASK, "GCP credentials")],
    ),
    RuleDefinition(
        id="env/deny-passwords",
        description="Deny password environment variables",
        category=RuleCategory.CREDENTIALS,
        env_rules=[_env(r"PASSWORD", DENY, "Password variable", ignore_case=True)],
    ),
    RuleDefinition(
        id="env/mask-tokens",
        description="Mask token and API key environment variables",
        category=RuleCategory.CREDENTIALS,
        env_rules=[
            _env(r"TOKEN", MASK, "Token variable", ignore_case=True),
            _env(r"API_KEY", MASK, "API key variable", ignore_case=True),
        ],
    ),
    RuleDefinition(
        id="env/mask-secrets",
        description="Mask secret environment variables",
        category=RuleCategory.CREDENTIALS,
        env_rules=[_env(r"SECRET", MASK, "Secret variable", ignore_case=True)],
    ),
    RuleDefinition(
        id="env/deny-database-urls",
        description="Deny database connection strings",
        category=RuleCategory.CREDENTIALS,
        env_rules=[
            _env(r"DATABASE_URL", DENY, "Database URL", ignore_case=True),
            _env(r"MONGODB_URI", DENY, "MongoDB URI", ignore_case=True),
            _env(r"REDIS_URL", DENY, "Redis URL", ignore_case=True),
            _env(r"POSTGRES_URL", DENY, "Postgres URL", ignore_case=True),
        ],
    ),
    # Secret files
    RuleDefinition(
        id="fs/hide-env-files",
        description="Hide .env files",
        category=RuleCategory.CREDENTIALS,
        file_rules=[_deny_file(_rx(r"\.env($|\.)"), "Environment file")],
    ),
    RuleDefinition(
        id="fs/hide-private-keys",
        description="Hide private key files",
        category=RuleCategory.CREDENTIALS,
        file_rules=[
            _deny_file(_rx(r"\.pem$"), "PEM private key"),
            _deny_file(_rx(r"\.key$"), "Private key"),
            _deny_file(_rx(r"id_rsa$"), "RSA private key"),
            _deny_file(_rx(r"id_ed25519$"), "Ed25519 private key"),
        ],
    ),
    RuleDefinition(
        id="fs/hide-docker-config",
        description="Hide Docker config with registry credentials",
        category=RuleCategory.CREDENTIALS,
        file_rules=[_deny_file(_rx(r"\.docker/config\.json"), "Docker credentials")],
    ),
    RuleDefinition(
        id="fs/hide-npm-config",
        description="Hide npm config with tokens",
        category=RuleCategory.CREDENTIALS,
        file_rules=[_deny_file(_rx(r"\.npmrc$"), "NPM config with tokens")],
    ),
    RuleDefinition(
        id="fs/hide-git-credentials",
        description="Hide git credential files",
        category=RuleCategory.CREDENTIALS,
        file_rules=[
            _deny_file(_rx(r"\.git-credentials$"), "Git credentials"),
            _deny_file(_rx(r"\.netrc$"), "Netrc credentials"),
        ],
    ),
    # Large or noisy directories
    RuleDefinition(
        id="fs/hide-node-modules",
        description="Hide node_modules",
        category=RuleCategory.FILESYSTEM,
        default_severity=WARN,
        file_rules=[_deny_file("node_modules", "Dependencies too large")],
    ),
    RuleDefinition(
        id="fs/hide-vcs",
        description="Hide version control internals",
        category=RuleCategory.FILESYSTEM,
        default_severity=WARN,
        file_rules=[
            _deny_file(".git", "Git internals"),
            _deny_file(".svn", "SVN internals"),
            _deny_file(".hg", "Mercurial internals"),
        ],
    ),
    RuleDefinition(
        id="fs/hide-build-output",
        description="Hide build output directories",
        category=RuleCategory.FILESYSTEM,
        default_severity=WARN,
        file_rules=[
            _deny_file("dist", "Build output"),
            _deny_file("build", "Build output"),
            _deny_file(".next", "Next.js cache"),
            _deny_file(".nuxt", "Nuxt cache"),
        ],
    ),
    # Dangerous commands
    RuleDefinition(
        id="cli/no-curl-pipe-bash",
        description="Prevent piping curl into a shell",
        category=RuleCategory.SECURITY,
        cli_rules=[
            _deny_cli(
                r"curl.*\|\s*(ba)?sh",
                "Piping curl to shell",
                ["Download script first, review, then run"],
            ),
        ],
    ),
    RuleDefinition(
        id="cli/no-wget-pipe-bash",
        description="Prevent piping wget into a shell",
        category=RuleCategory.SECURITY,
        cli_rules=[_deny_cli(r"wget.*-O\s*-.*\|\s*(ba)?sh", "Piping wget to shell")],
    ),
    RuleDefinition(
        id="cli/no-credential-echo",
        description="Prevent echoing credentials",
        category=RuleCategory.CREDENTIALS,
        cli_rules=[
            _deny_cli(
                r"echo.*\$\{?(PASSWORD|SECRET|TOKEN|API_KEY)",
                "Echoing sensitive variable",
                ignore_case=True,
            ),
        ],
    ),
    RuleDefinition(
        id="cli/no-curl-with-password",
        description="Prevent curl with inline credentials",
        category=RuleCategory.CREDENTIALS,
        cli_rules=[
            _deny_cli(
                r"curl.*(-u|--user)\s+\S+:\S+",
                "Curl with inline credentials",
                ["Use .netrc or environment variables"],
            ),
            _deny_cli(r"curl.*password=", "Password in URL", ignore_case=True),
        ],
    ),
)

PLATFORM_RULES: tuple[RuleDefinition, ...] = (
    *WINDOWS_RULES,
    *DARWIN_RULES,
    *LINUX_RULES,
    *CROSS_PLATFORM_RULES,
)
