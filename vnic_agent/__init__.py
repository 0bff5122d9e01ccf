"""Reserved public IP and secondary VNIC provisioning agent."""
