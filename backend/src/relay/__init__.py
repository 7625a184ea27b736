"""CloudFormation custom resource relay to a downstream Lambda function."""
