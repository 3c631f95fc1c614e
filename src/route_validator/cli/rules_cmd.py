"""Rules CLI commands: check and directives."""

from pathlib import Path

import click

from route_validator.errors import RouteConfigError
from route_validator.evaluator import resolve_field
from route_validator.registry import ValidatorRegistry
from route_validator.rules.loader import RulesLoader
from route_validator.rules.schema import RuleIssue, validate_rules_file
from route_validator.settings import ValidatorSettings
from route_validator.types import DirectiveKind, UnknownDirectivePolicy


def _unknown_directive_issues(
    loader: RulesLoader,
    registry: ValidatorRegistry,
    severity: str,
) -> list[RuleIssue]:
    issues = []
    for name, config in loader.routes.items():
        for rules in config.rules.values():
            for rule in rules:
                _, unknown = resolve_field(rule, registry)
                for directive in unknown:
                    issues.append(
                        RuleIssue(
                            file=loader.path,
                            message=f"Unknown directive {directive!r}",
                            path=f"routes/{name}/{rule.scope.value}/{rule.name}",
                            severity=severity,
                        )
                    )
    return issues


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat unknown directive names as errors.",
)
def check(path: Path, strict: bool):
    """Check a rules YAML file against the schema and the built-in directives."""
    # ── Schema (JSON Schema) validation ─────────────────────────────────────
    schema_issues = validate_rules_file(path)
    for issue in schema_issues:
        click.echo(click.style(str(issue), fg="red"))

    if schema_issues:
        click.echo(click.style(f"\n{len(schema_issues)} schema error(s) found", fg="red", bold=True))
        raise SystemExit(1)

    # ── Route construction ───────────────────────────────────────────────────
    policy = UnknownDirectivePolicy.ERROR if strict else UnknownDirectivePolicy.IGNORE
    registry = ValidatorRegistry.with_builtins(ValidatorSettings(unknown_directives=policy))

    loader = RulesLoader(path)
    try:
        loader.load()
    except RouteConfigError as e:
        click.echo(click.style(f"\nRoute config is invalid: {e}", fg="red"), err=True)
        raise SystemExit(1)

    issues = _unknown_directive_issues(loader, registry, "error" if strict else "warning")
    errors = [i for i in issues if i.severity == "error"]
    warnings = [i for i in issues if i.severity == "warning"]

    for issue in issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    if errors:
        click.echo(click.style(f"\n{len(errors)} error(s) found", fg="red", bold=True))
        raise SystemExit(1)

    if warnings:
        click.echo(click.style(f"{len(warnings)} warning(s) found.", fg="yellow"))

    routes = loader.list_routes()
    for name in routes:
        try:
            loader.validator(name, registry)
        except RouteConfigError as e:
            click.echo(click.style(f"\nRoute {name!r} cannot be built: {e}", fg="red"), err=True)
            raise SystemExit(1)

    click.echo(f"\nLoaded {len(routes)} route(s):")
    for name in routes:
        config = loader.routes[name]
        field_count = sum(len(rules) for rules in config.rules.values())
        scopes = ", ".join(scope.value for scope in config.rules) or "none"
        click.echo(f"  ✓ {name} ({field_count} fields, scopes: {scopes})")

    click.echo(click.style("\nAll rules are valid.", fg="green", bold=True))


@click.command()
@click.option(
    "--stage",
    type=click.Choice(
        [DirectiveKind.BEFORE.value, DirectiveKind.VALIDATOR.value, DirectiveKind.AFTER.value]
    ),
    default=None,
    help="Only list directives of one stage.",
)
def directives(stage: str | None):
    """List the built-in directive names per stage."""
    registered = ValidatorRegistry.with_builtins().list_registered()

    for kind, names in registered.items():
        if stage is not None and kind != stage:
            continue
        click.echo(click.style(f"{kind} ({len(names)}):", bold=True))
        for name in names:
            click.echo(f"  {name}")
