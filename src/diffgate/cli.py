"""Diffgate CLI - evaluate diffs against governance policies."""

from __future__ import annotations

import json
import logging
import sys
import traceback
from pathlib import Path

import click

from diffgate import __version__
from diffgate.config import GateConfig
from diffgate.diff import diff_summary, parse_diff
from diffgate.git import read_git_diff
from diffgate.policy.evaluator import evaluate_policy
from diffgate.policy.manager import (
    PolicyLoader,
    export_policy,
    parse_policy_document,
    validate_policy,
)
from diffgate.policy.models import Policy
from diffgate.report import explain_rule, exit_code, render_json, render_summary, render_text
from diffgate.severity import Severity


def handle_error(error: Exception, debug: bool) -> None:
    """Handle errors with structured output.

    Args:
        error: The exception that occurred
        debug: Whether to show full traceback
    """
    if debug:
        traceback.print_exc()
    else:
        click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def read_diff_text(
    diff: str | None,
    staged: bool,
    head: bool,
    base: str | None,
) -> str:
    """Read diff text from a file, stdin ('-'), or git."""
    if diff == "-":
        return click.get_text_stream("stdin").read()
    if diff:
        with open(diff, encoding="utf-8", errors="replace") as f:
            return f.read()
    return read_git_diff(staged=staged, head=head, base=base)


def resolve_policy(config: GateConfig, policies: tuple[str, ...]) -> Policy:
    """Merge the command-line policies, else the configured ones, else the default."""
    sources = list(policies) or config.policies
    if not sources:
        return PolicyLoader.load("default")
    return PolicyLoader.load_merged(sources)


def diff_source_options(func):
    """Attach the options selecting where the diff comes from."""
    func = click.option('--base', help='Diff against this git ref')(func)
    func = click.option('--head', is_flag=True, help='Diff working tree against HEAD')(func)
    func = click.option('--staged', is_flag=True, help='Diff staged changes')(func)
    func = click.option(
        '--diff', '-d',
        type=click.Path(allow_dash=True),
        help="Diff file to read ('-' for stdin); runs git diff when omitted",
    )(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="diffgate")
@click.option('--config', 'config_path', type=click.Path(exists=True, path_type=Path),
              help='Config file (default: diffgate.yaml or .diffgate.yaml)')
@click.option('--debug', is_flag=True, help='Enable debug mode (show full tracebacks)')
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, debug: bool):
    """Diffgate - allow/warn/block decisions for code changes."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    try:
        config = GateConfig.load(config_path)
    except Exception as e:
        handle_error(e, debug)
    ctx.obj['config'] = config

    logging.basicConfig(
        level=logging.DEBUG if debug else config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@diff_source_options
@click.option('--policy', '-p', multiple=True,
              help="Policy file or built-in name ('default'); repeat to merge")
@click.option('--format', 'output_format', type=click.Choice(['text', 'json']),
              help='Output format')
@click.option('--fail-on', type=click.Choice(['warn', 'block']),
              help='Lowest decision that exits non-zero')
@click.pass_context
def check(
    ctx: click.Context,
    diff: str | None,
    staged: bool,
    head: bool,
    base: str | None,
    policy: tuple[str, ...],
    output_format: str | None,
    fail_on: str | None,
):
    """Evaluate a diff against policy rules.

    Exits 0 on allow, 1 on warn, 2 on block.

    Examples:
      diffgate check --staged
      diffgate check --base origin/main --policy team-policy.yaml
      git diff HEAD~1 | diffgate check --diff - --format json
    """
    debug = ctx.obj.get('debug', False)
    config: GateConfig = ctx.obj['config']
    output_format = output_format or config.output_format
    threshold = Severity.from_string(fail_on) if fail_on else config.fail_on

    try:
        diff_text = read_diff_text(diff, staged, head, base)
        if not diff_text.strip():
            click.echo("✓ No changes detected")
            sys.exit(0)

        files = parse_diff(diff_text)
        if not files:
            click.echo("✓ No file changes detected")
            sys.exit(0)

        active_policy = resolve_policy(config, policy)
        result = evaluate_policy(files, active_policy)
        summary = diff_summary(files)
    except Exception as e:
        handle_error(e, debug)

    if output_format == 'json':
        click.echo(render_json(summary, result))
    else:
        click.echo(render_text(summary, result))

    sys.exit(exit_code(result.decision, threshold))


@cli.command()
@diff_source_options
@click.option('--format', 'output_format', type=click.Choice(['text', 'json']),
              help='Output format')
@click.pass_context
def summary(
    ctx: click.Context,
    diff: str | None,
    staged: bool,
    head: bool,
    base: str | None,
    output_format: str | None,
):
    """Show files and line counts of a diff without evaluating rules."""
    debug = ctx.obj.get('debug', False)
    config: GateConfig = ctx.obj['config']
    output_format = output_format or config.output_format

    try:
        files = parse_diff(read_diff_text(diff, staged, head, base))
        diff_stats = diff_summary(files)
    except Exception as e:
        handle_error(e, debug)

    if output_format == 'json':
        click.echo(json.dumps(diff_stats.to_dict(), indent=2, ensure_ascii=False))
    else:
        click.echo(render_summary(diff_stats))


@cli.command()
@click.argument('path', type=click.Path(exists=True, path_type=Path))
@click.pass_context
def policy_validate(ctx: click.Context, path: Path):
    """Validate a policy file.

    Example:
      diffgate policy-validate ./team-policy.yaml
    """
    debug = ctx.obj.get('debug', False)

    try:
        with open(path, encoding="utf-8") as f:
            data = parse_policy_document(f.read())
        errors = validate_policy(data)
    except Exception as e:
        handle_error(e, debug)

    if errors:
        click.echo(f"Policy validation failed: {path}", err=True)
        for error in errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(1)

    click.echo(f"✓ Policy is valid: {path}")


@cli.command()
@click.option('--policy', '-p', multiple=True,
              help="Policy file or built-in name; repeat to merge (default: built-in default)")
@click.option('--format', 'output_format', type=click.Choice(['json', 'yaml']), default='json',
              help='Export format')
@click.option('--out', '-o', type=click.Path(path_type=Path), help='Write to file instead of stdout')
@click.pass_context
def policy_export(ctx: click.Context, policy: tuple[str, ...], output_format: str, out: Path | None):
    """Export the effective policy.

    Examples:
      diffgate policy-export --format yaml --out diffgate-policy.yaml
      diffgate policy-export --policy default --policy overrides.yaml
    """
    debug = ctx.obj.get('debug', False)
    config: GateConfig = ctx.obj['config']

    try:
        text = export_policy(resolve_policy(config, policy), output_format)
        if out:
            out.parent.mkdir(parents=True, exist_ok=True)
            with open(out, "w", encoding="utf-8") as f:
                f.write(text if text.endswith("\n") else text + "\n")
            click.echo(f"Policy written to: {out}")
        else:
            click.echo(text)
    except Exception as e:
        handle_error(e, debug)


@cli.command()
@click.option('--rule', '-r', required=True, help='Rule ID to explain')
@click.option('--policy', '-p', multiple=True, help='Policy file or built-in name; repeat to merge')
@click.pass_context
def policy_explain(ctx: click.Context, rule: str, policy: tuple[str, ...]):
    """Explain a policy rule.

    Example:
      diffgate policy-explain --rule potential-secret-default
    """
    debug = ctx.obj.get('debug', False)
    config: GateConfig = ctx.obj['config']

    try:
        active_policy = resolve_policy(config, policy)
    except Exception as e:
        handle_error(e, debug)

    policy_rule = active_policy.get_rule(rule)
    if not policy_rule:
        click.echo(f"Rule not found: {rule}", err=True)
        available = [r.id for r in active_policy.rules]
        click.echo(f"Available rules: {', '.join(available)}", err=True)
        sys.exit(1)

    click.echo(explain_rule(policy_rule))


def main() -> None:
    """Entry point."""
    cli()


if __name__ == '__main__':
    main()
