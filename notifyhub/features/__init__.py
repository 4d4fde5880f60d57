"""Feature packages: attachments, services, dispatch, scheduler, config."""
