"""Newsletter subscriptions: public subscribe/unsubscribe, admin listing."""
