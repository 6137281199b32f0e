"""AEM persisted-query proxy for AWS Lambda."""
