"""Click commands for kubelaunch."""
