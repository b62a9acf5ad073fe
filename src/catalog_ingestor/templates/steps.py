"""
Workflow steps for scaffolding templates.

Steps are rendered from fixed YAML skeletons. Values substituted into
a skeleton are JSON-encoded first, so they always load back as plain
YAML scalars or lists.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import yaml

from catalog_ingestor.config import PublishPhaseConfig, PublishTarget

logger = logging.getLogger(__name__)

CLAIM_TEMPLATE_ACTION = "terasky:claim-template"
CRD_TEMPLATE_ACTION = "terasky:crd-template"

PULL_REQUEST_ACTIONS = {
    PublishTarget.GITLAB: "publish:gitlab:merge-request",
    PublishTarget.BITBUCKET: "publish:bitbucketServer:pull-request",
    PublishTarget.BITBUCKET_CLOUD: "publish:bitbucketCloud:pull-request",
}
DEFAULT_PULL_REQUEST_ACTION = "publish:github:pull-request"

PULL_REQUEST_OUTPUTS = {
    PublishTarget.GITLAB: "mergeRequestUrl",
    PublishTarget.BITBUCKET: "pullRequestUrl",
    PublishTarget.BITBUCKET_CLOUD: "pullRequestUrl",
}
DEFAULT_PULL_REQUEST_OUTPUT = "remoteUrl"

MANIFEST_STEP = """\
- id: generateManifest
  name: Generate Kubernetes Resource Manifest
  action: {ACTION}
  input:
    parameters: ${{ parameters }}
    nameParam: {NAME_PARAM}
    namespaceParam: {NAMESPACE_PARAM}
    excludeParams: {EXCLUDE_PARAMS}
    apiVersion: {API_VERSION}
    kind: {KIND}
    clusters: ${{ parameters.clusters if parameters.manifestLayout === 'cluster-scoped' and parameters.pushToGit else ['temp'] }}
    removeEmptyParams: true
"""

PULL_REQUEST_STEP = """\
- id: create-pull-request
  name: create-pull-request
  action: {ACTION}
  if: ${{ parameters.pushToGit }}
  input:
    repoUrl: {REPO_URL}
    branchName: {BRANCH_NAME}
    title: {TITLE}
    description: {TITLE}
    targetBranchName: {TARGET_BRANCH}
"""

RENAME_STEPS = """\
- id: moveNamespacedManifest
  name: Move and Rename Manifest
  if: ${{ parameters.manifestLayout === 'namespace-scoped' }}
  action: fs:rename
  input:
    files:
      - from: ${{ steps.generateManifest.output.filePaths[0] }}
        to: {NAMESPACED_PATH}
- id: moveCustomManifest
  name: Move and Rename Manifest
  if: ${{ parameters.manifestLayout === 'custom' }}
  action: fs:rename
  input:
    files:
      - from: ${{ steps.generateManifest.output.filePaths[0] }}
        to: {CUSTOM_PATH}
"""

USER_TOKEN = "${{ secrets.USER_OAUTH_TOKEN }}"


def render(skeleton: str, **values: Any) -> list[dict[str, Any]]:
    """
    Substitute {NAME} placeholders and load the skeleton.

    Args:
        skeleton: YAML list of steps with {NAME} placeholders
        **values: Placeholder values keyed by NAME

    Returns:
        Loaded list of step dicts
    """
    text = skeleton
    for name, value in values.items():
        text = text.replace("{" + name + "}", json.dumps(value))
    return yaml.safe_load(text) or []


def pull_request_action(target: PublishTarget) -> str:
    """Scaffolder action opening a pull request on target."""
    return PULL_REQUEST_ACTIONS.get(target, DEFAULT_PULL_REQUEST_ACTION)


def pull_request_url(target: PublishTarget) -> str:
    """Template expression resolving to the opened pull request URL."""
    output = PULL_REQUEST_OUTPUTS.get(target, DEFAULT_PULL_REQUEST_OUTPUT)
    return '${{ steps["create-pull-request"].output.' + output + " }}"


def manifest_step(
    action: str,
    api_version: str,
    kind: str,
    name_param: str,
    namespace_param: str,
    exclude_params: list[str],
    owner_param: str | None = None,
) -> dict[str, Any]:
    """
    Build the manifest generation step.

    Args:
        action: Manifest template action
        api_version: apiVersion written into the manifest
        kind: Kind written into the manifest
        name_param: Parameter holding the resource name
        namespace_param: Parameter holding the namespace ("" when cluster scoped)
        exclude_params: Parameters not copied into the manifest spec
        owner_param: Parameter holding the owner, if the action records it

    Returns:
        The generateManifest step
    """
    step = render(
        MANIFEST_STEP,
        ACTION=action,
        NAME_PARAM=name_param,
        NAMESPACE_PARAM=namespace_param,
        EXCLUDE_PARAMS=list(exclude_params),
        API_VERSION=api_version,
        KIND=kind,
    )[0]
    if owner_param:
        inputs = step["input"]
        step["input"] = {}
        for key, value in inputs.items():
            step["input"][key] = value
            if key == "namespaceParam":
                step["input"]["ownerParam"] = owner_param
    return step


def pull_request_step(
    publish: PublishPhaseConfig, kind: str, name_param: str
) -> dict[str, Any] | None:
    """
    Build the pull request step, or None when manifests are only downloaded.

    With repository selection allowed the repository and branch come
    from the form; otherwise from the configured git settings.
    """
    if publish.target == PublishTarget.YAML:
        return None

    name_expr = "${{ parameters." + name_param + " }}"
    if publish.allow_repo_selection:
        repo_url: str | None = "${{ parameters.repoUrl }}"
        target_branch: str | None = "${{ parameters.targetBranch }}"
    else:
        repo_url = publish.repo_url
        target_branch = publish.target_branch

    step = render(
        PULL_REQUEST_STEP,
        ACTION=pull_request_action(publish.target),
        REPO_URL=repo_url,
        BRANCH_NAME=f"create-{name_expr}-resource",
        TITLE=f"Create {kind} Resource {name_expr}",
        TARGET_BRANCH=target_branch,
    )[0]
    if publish.request_user_credentials:
        step["input"]["token"] = USER_TOKEN
    return step


def rename_steps(name_param: str, namespace_param: str) -> list[dict[str, Any]]:
    """Steps moving the generated manifest for namespace-scoped and custom layouts."""
    file_name = "${{ steps.generateManifest.output.filePaths[0].split('/').pop() }}"
    return render(
        RENAME_STEPS,
        NAMESPACED_PATH=(
            "./${{ parameters." + namespace_param + " }}"
            "/${{ steps.generateManifest.input.kind }}/" + file_name
        ),
        CUSTOM_PATH="./${{ parameters.basePath }}/${{ parameters." + name_param + " }}.yaml",
    )


def extra_steps(version: dict[str, Any], log: logging.Logger | None = None) -> list[dict[str, Any]]:
    """
    Additional steps declared in a version schema.

    The steps are a YAML list stored as the default value of the
    reserved "steps" property of the version's openAPIV3Schema.
    """
    schema = (version.get("schema") or {}).get("openAPIV3Schema") or {}
    raw = ((schema.get("properties") or {}).get("steps") or {}).get("default")
    if not raw:
        return []

    try:
        steps = yaml.safe_load(raw) if isinstance(raw, str) else raw
    except yaml.YAMLError as e:
        (log or logger).warning(f"Ignoring invalid steps for version {version.get('name')}: {e}")
        return []

    if not isinstance(steps, list):
        (log or logger).warning(
            f"Ignoring steps for version {version.get('name')}: expected a list"
        )
        return []
    return steps
