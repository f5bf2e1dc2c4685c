"""Project version constants.

These constants are printed by the CLI and embedded in the AWS SDK user agent
so that API calls can be traced back to a specific analyzer version.
"""

ENGINE_NAME: str = "lambdacost"
ENGINE_VERSION: str = "0.1.0"
